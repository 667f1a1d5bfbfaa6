# Overview: Record lifecycle states shared by archivable models.

"""
Archival is an explicit record state, orthogonal to the business status.

An ARCHIVED event keeps its status and its supply lines, so an archived
event that still holds allocated stock is a visible, queryable state
rather than a side effect of a boolean flag.
"""

RECORD_ACTIVE = "ACTIVE"
RECORD_ARCHIVED = "ARCHIVED"

RECORD_STATES = (RECORD_ACTIVE, RECORD_ARCHIVED)
