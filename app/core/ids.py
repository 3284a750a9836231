"""
Identifier types for values stored in uuid columns.

Malformed ids fail request validation (400) instead of reaching PostgREST,
which rejects them with 22P02.
"""
from fastapi import Path
from pydantic import StringConstraints
from typing import Annotated

UUID_PATTERN = r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$"

# Path segment such as {group_id}
PathId = Annotated[str, Path(pattern=UUID_PATTERN)]

# Request body field
UuidStr = Annotated[str, StringConstraints(pattern=UUID_PATTERN)]
