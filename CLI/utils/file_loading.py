import logging
from pathlib import Path
from typing import List, Optional, Union

from hcl2json.variables import is_variable_file

TF = '.tf'
TFVARS = '.tfvars'

SUPPORTED_SUFFIXES = (TF, TFVARS, '.hcl', '.json', '.yaml', '.yml')

logger = logging.getLogger(__name__)


def find_document(path: Union[str, Path]) -> Optional[Path]:
    """
    Find a configuration document in the given path. If path is a file, verify its type.
    For a directory, the first .tf file (sorted by name) is used.
    Returns the path to the document or None if not found.
    """
    path = Path(path)

    if path.is_file():
        return path if path.suffix.lower() in SUPPORTED_SUFFIXES else None

    # If it's a directory, look for Terraform files
    tf_files = sorted(path.glob(f'*{TF}'))
    if tf_files:
        logger.debug("Found %d Terraform files in %s, using %s", len(tf_files), path, tf_files[0])
        return tf_files[0]
    return None


def read_document(path: Union[str, Path]) -> bytes:
    """Read the whole document up front; the parser never touches the filesystem."""
    path = Path(path)
    with open(path, 'rb') as f:
        content = f.read()
    logger.debug("Read %d bytes from %s", len(content), path)
    return content


def find_variable_files(path: Union[str, Path]) -> List[Path]:
    """
    Files that contribute input variables. A single .tf or .tfvars file is used as is;
    in a directory only files Terraform loads by itself count (.tf, terraform.tfvars, *.auto.tfvars).
    """
    path = Path(path)

    if path.is_file():
        return [path] if path.suffix.lower() in (TF, TFVARS) else []

    files = [f for f in sorted(path.iterdir()) if f.is_file() and is_variable_file(f.name)]
    logger.debug("Found %d variable files in %s", len(files), path)
    return files
