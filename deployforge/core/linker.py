"""Library linking by placeholder substitution.

Compilers leave a fixed-width placeholder wherever a library address must
go: ``__<LibraryName>`` padded with underscores to 40 hex characters, the
width of one address.  Linking replaces each placeholder with the library's
lowercase address.  No semantic understanding of the bytecode is involved.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping

from eth_utils import is_address

from deployforge.core.errors import MissingLibraryAddress, UnresolvedLibraryMarker
from deployforge.models.artifacts import LinkedBytecode

MARKER_WIDTH = 40
_MAX_NAME = MARKER_WIDTH - 2

# Any leftover placeholder: two underscores followed by 38 name/underscore chars
_PLACEHOLDER = re.compile(r"__[A-Za-z0-9_$.:]{38}")


def library_marker(name: str) -> str:
    """Return the 40-character placeholder for library ``name``."""
    name = name[:_MAX_NAME]
    return f"__{name}{'_' * (_MAX_NAME - len(name))}"


def find_unresolved_markers(bytecode: str) -> list[str]:
    """Return the library names of placeholders still present, in order."""
    found = [m.group(0)[2:].rstrip("_") for m in _PLACEHOLDER.finditer(bytecode)]
    return list(dict.fromkeys(found))


def link(
    bytecode: str,
    libraries: Iterable[str],
    resolved_libraries: Mapping[str, str],
    *,
    contract: str = "",
) -> LinkedBytecode:
    """Substitute every required library placeholder with its address.

    Parameters
    ----------
    bytecode:
        Hex creation bytecode (with or without ``0x``) containing markers.
    libraries:
        Library names that must be linked into this bytecode.
    resolved_libraries:
        Library name to deployed address, from earlier commits in this run.
    contract:
        Name used in error reports.

    Raises ``MissingLibraryAddress`` if a required library has no address,
    and ``UnresolvedLibraryMarker`` if a required marker is absent or any
    placeholder survives substitution.
    """
    code = bytecode.removeprefix("0x")
    used: dict[str, str] = {}
    for name in libraries:
        address = resolved_libraries.get(name)
        if not address or not is_address(address):
            raise MissingLibraryAddress(name, artifact=contract or None)
        marker = library_marker(name)
        if marker not in code:
            raise UnresolvedLibraryMarker(
                name,
                artifact=contract or None,
                detail="placeholder not found in bytecode",
            )
        code = code.replace(marker, address.lower().removeprefix("0x"))
        used[name] = address

    leftover = find_unresolved_markers(code)
    if leftover:
        raise UnresolvedLibraryMarker(
            leftover[0],
            artifact=contract or None,
            detail="library is not declared or has not been deployed",
        )
    return LinkedBytecode(contract=contract, code="0x" + code, libraries=used)
