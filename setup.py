from setuptools import setup


setup(
    name="sheet-rapi",
    version="0.3.0",
    description="Data-quality checks and deterministic cleanup for Indonesian CSV and Excel files",
    packages=[
        "sheet_rapi",
        "sheet_rapi.diagnose_modules",
        "sheet_rapi.heal_modules",
    ],
    install_requires=[
        "pandas",
        "chardet",
        "openpyxl",
        "rapidfuzz",
    ],
    extras_require={
        "xls": ["xlrd"],
        "ocr": ["pytesseract", "Pillow"],
        "test": ["pytest"],
        "all": ["xlrd", "pytesseract", "Pillow"],
    },
    entry_points={
        "console_scripts": [
            "sheet-rapi=sheet_rapi.cli:main",
        ]
    },
)
