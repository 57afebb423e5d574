"""
Shared, cross-cutting code for the gateway.

`core/` holds small building blocks that every feature uses (DB wiring,
settings, logging, typed HTTP failures). Keep workflow SQL in `workflows/`
and storage backends in `storage/`.
"""
