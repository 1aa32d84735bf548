from .errors import (
    DocumentError,
    ErrorKind,
    HCL2JSONError,
    LexError,
    ParseError,
    PathNotFoundError,
    ProjectionError,
)
from .main import (
    HCL2JSONParser,
    NativeHCLEngine,
    ParserEngine,
    hcl2json,
    line_number,
    new_parser,
    to_json,
)

from .documents import parse_terraform_plan
from .variables import extract_variables, merge_variables

__version__ = '0.1.0'
