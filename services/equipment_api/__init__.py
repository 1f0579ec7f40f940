"""Band Stage - Equipment API service.

FastAPI command layer over the equipment store: record-level CRUD, the
routing/assignment mutators, and the derived channel list.
"""

__all__: list[str] = []
