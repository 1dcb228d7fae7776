"""Column detection and import-template mapping for delimited and JSON data files."""

__version__ = "0.1.0"

from sheet_mapper.combination import (
    CombinationValidationError,
    Delimiter,
    FieldCombination,
    SourceField,
    ValidationIssue,
)
from sheet_mapper.config import DEFAULT_CONFIG, ParseOptions, ParserConfig
from sheet_mapper.decoder import DecodeError, decode_bytes
from sheet_mapper.editor import CombinationEditor, EditResult
from sheet_mapper.matcher import TemplateSuggestion, suggest_template
from sheet_mapper.models import DataType, DetectedField, ParseOutcome, TableData
from sheet_mapper.parser import ParseFailure, UnsupportedFileType, load_table, parse_bytes, parse_path
from sheet_mapper.templates import (
    ImportFieldMapping,
    ImportTemplate,
    InMemoryTemplateStore,
    TemplateNotFound,
    TemplateValidationError,
    check_template_match,
    validate_template,
)

__all__ = [
    "CombinationEditor",
    "CombinationValidationError",
    "DEFAULT_CONFIG",
    "DataType",
    "DecodeError",
    "Delimiter",
    "DetectedField",
    "EditResult",
    "FieldCombination",
    "ImportFieldMapping",
    "ImportTemplate",
    "InMemoryTemplateStore",
    "ParseFailure",
    "ParseOptions",
    "ParseOutcome",
    "ParserConfig",
    "SourceField",
    "TableData",
    "TemplateNotFound",
    "TemplateSuggestion",
    "TemplateValidationError",
    "UnsupportedFileType",
    "ValidationIssue",
    "__version__",
    "check_template_match",
    "decode_bytes",
    "load_table",
    "parse_bytes",
    "parse_path",
    "suggest_template",
]
