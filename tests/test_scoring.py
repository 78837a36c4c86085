import unittest

from sheet_rapi.issue_taxonomy import Issue
from sheet_rapi.scoring import calculate_quality_score, grade_for, issue_deduction


def make_issue(severity, affected_rows=None):
    return Issue(id="ISS-0001", type="whitespace", severity=severity, message="", affected_rows=affected_rows)


class QualityScoreTests(unittest.TestCase):
    def test_no_issues_is_a_perfect_score(self):
        score = calculate_quality_score([], 10)
        self.assertEqual((score.score, score.grade, score.label), (100, "A", "Excellent"))

    def test_deduction_scales_with_affected_share(self):
        self.assertEqual(issue_deduction(make_issue("critical", 1), 100), 2.0)
        self.assertEqual(issue_deduction(make_issue("needs_review", 5), 100), 5.0)
        self.assertEqual(issue_deduction(make_issue("auto_fix", 10), 100), 5.0)

    def test_deduction_is_capped_per_severity(self):
        self.assertEqual(issue_deduction(make_issue("critical", 100), 100), 20.0)
        self.assertEqual(issue_deduction(make_issue("needs_review", 100), 100), 10.0)
        self.assertEqual(issue_deduction(make_issue("auto_fix", 100), 100), 5.0)

    def test_issue_without_affected_rows_counts_one_row(self):
        self.assertEqual(issue_deduction(make_issue("critical"), 50), 4.0)

    def test_empty_table_takes_full_impact(self):
        self.assertEqual(issue_deduction(make_issue("auto_fix"), 0), 5.0)

    def test_score_never_drops_below_zero(self):
        issues = [make_issue("critical", 10) for _ in range(8)]
        score = calculate_quality_score(issues, 10)
        self.assertEqual((score.score, score.grade, score.label), (0, "F", "Critical"))

    def test_score_rounds_half_up(self):
        # 100 - 0.5 = 99.5
        score = calculate_quality_score([make_issue("auto_fix", 1)], 100)
        self.assertEqual(score.score, 100)

    def test_grade_boundaries(self):
        cases = {100: "A", 90: "A", 89: "B", 80: "B", 79: "C", 70: "C", 69: "D", 60: "D", 59: "F", 0: "F"}
        for score, grade in cases.items():
            with self.subTest(score=score):
                self.assertEqual(grade_for(score)[0], grade)

    def test_to_dict(self):
        self.assertEqual(
            calculate_quality_score([make_issue("needs_review", 4)], 10).to_dict(),
            {"score": 90, "grade": "A", "label": "Excellent"},
        )


if __name__ == "__main__":
    unittest.main()
