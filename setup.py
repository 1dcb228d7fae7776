from setuptools import setup


setup(
    name="sheet-mapper",
    version="0.1.0",
    description="Detect the columns of CSV, text and JSON data files and map them onto import templates",
    packages=["sheet_mapper"],
    python_requires=">=3.9",
    install_requires=[
        "pandas",
        "chardet",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "sheet-mapper=sheet_mapper.cli:main",
        ]
    },
)
