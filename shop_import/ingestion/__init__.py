"""Reading uploaded customer files and writing cleaned results back out."""

from .exporters import TEMPLATES, cleaned_rows_to_dataframe, export_cleaned_rows, template_csv
from .parser import ParseError, UnsupportedFileTypeError, cell_to_text, parse_file, parse_path, split_delimited

__all__ = [
    "ParseError",
    "TEMPLATES",
    "UnsupportedFileTypeError",
    "cell_to_text",
    "cleaned_rows_to_dataframe",
    "export_cleaned_rows",
    "parse_file",
    "parse_path",
    "split_delimited",
    "template_csv",
]
