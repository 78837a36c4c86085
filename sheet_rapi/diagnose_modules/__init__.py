from sheet_rapi.diagnose_modules.duplicates import check_duplicates
from sheet_rapi.diagnose_modules.formats import check_formats
from sheet_rapi.diagnose_modules.indonesia import check_indonesia
from sheet_rapi.diagnose_modules.logic import check_logic
from sheet_rapi.diagnose_modules.outliers import check_outliers
from sheet_rapi.diagnose_modules.quality import check_quality
from sheet_rapi.diagnose_modules.structure import check_structure


DETECTION_PASSES = (
    ("structure", check_structure),
    ("formats", check_formats),
    ("quality", check_quality),
    ("duplicates", check_duplicates),
    ("outliers", check_outliers),
    ("logic", check_logic),
    ("indonesia", check_indonesia),
)
