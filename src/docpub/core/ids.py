"""Address validation and hashing utilities."""

import base64
import hashlib
import re
from pathlib import Path
from typing import Optional

# +name.suffix
WORKSPACE_RE = re.compile(r"^\+[a-z][a-z0-9]{0,14}\.[a-z][a-z0-9]{0,52}$")
# @shrt.b<52 base32 chars>
AUTHOR_RE = re.compile(r"^@[a-z][a-z0-9]{3}\.b[a-z2-7]{52}$")

PATH_PUNCTUATION = "/'()-._~!$&+,:=@%"
MIN_PATH_LENGTH = 2
MAX_PATH_LENGTH = 512


def check_workspace_address(address: str) -> Optional[str]:
    """Return an error message if ``address`` is not a valid workspace address."""
    if not isinstance(address, str) or not address:
        return "workspace address must be a non-empty string"
    if not address.startswith("+"):
        return f"workspace address must start with '+': {address!r}"
    if not WORKSPACE_RE.match(address):
        return f"invalid workspace address: {address!r}"
    return None


def is_valid_workspace_address(address: str) -> bool:
    return check_workspace_address(address) is None


def check_author_address(address: str) -> Optional[str]:
    """Return an error message if ``address`` is not a valid author address."""
    if not isinstance(address, str) or not AUTHOR_RE.match(address):
        return f"invalid author address: {address!r}"
    return None


def check_path(path: str) -> Optional[str]:
    """Return an error message if ``path`` is not a valid document path."""
    if not isinstance(path, str):
        return "path must be a string"
    if not MIN_PATH_LENGTH <= len(path) <= MAX_PATH_LENGTH:
        return f"path length must be between {MIN_PATH_LENGTH} and {MAX_PATH_LENGTH}"
    if not path.startswith("/"):
        return "path must start with '/'"
    if path.endswith("/"):
        return "path must not end with '/'"
    if path.startswith("/@"):
        return "path must not start with '/@'"
    if "//" in path:
        return "path must not contain '//'"
    for ch in path:
        if not (ch.isascii() and (ch.isalnum() or ch in PATH_PUNCTUATION)):
            return f"path contains disallowed character {ch!r}"
    return None


def is_ephemeral_path(path: str) -> bool:
    """Paths containing '!' hold documents that expire."""
    return "!" in path


def author_can_write_to_path(author: str, path: str) -> bool:
    """A path that names owners with '~' is writable only by those owners."""
    if "~" not in path:
        return True
    return f"~{author}" in path


def hash_content(content: str) -> str:
    """Hash document content the way documents carry it in ``contentHash``."""
    digest = hashlib.sha256(content.encode("utf-8")).digest()
    return "b" + base64.b32encode(digest).decode("ascii").lower().rstrip("=")


def workspace_to_filename(data_folder: Path, workspace: str) -> Path:
    """Map a workspace address to its SQLite file, dropping the leading '+'."""
    return Path(data_folder) / f"{workspace[1:]}.sqlite"


def filename_to_workspace(filename: Path) -> str:
    name = Path(filename).name
    if name.endswith(".sqlite"):
        name = name[: -len(".sqlite")]
    return "+" + name
