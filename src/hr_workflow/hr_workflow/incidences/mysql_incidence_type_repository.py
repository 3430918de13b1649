from __future__ import annotations

from typing import Optional, Sequence

from ..core.enums import IncidenceCategory, IncidenceEffect
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, load_json
from .model import FormField, IncidenceType
from .repository import IncidenceTypeCatalog

_SELECT = """
    SELECT incidence_type_id, name, category, effect_type,
           is_requestable, form_fields, display_order
    FROM incidence_types
"""


def _to_incidence_type(r: dict) -> IncidenceType:
    raw_fields = load_json(r.get("form_fields")) or {}
    # Stored either as {"fields": [...]} or as a bare list.
    if isinstance(raw_fields, dict):
        raw_fields = raw_fields.get("fields") or []
    return IncidenceType(
        incidence_type_id=int(r["incidence_type_id"]),
        name=r["name"],
        category=IncidenceCategory(r["category"]),
        effect=IncidenceEffect(r["effect_type"]),
        is_requestable=bool(r.get("is_requestable", 0)),
        form_fields=tuple(FormField.from_dict(f) for f in raw_fields),
        display_order=int(r.get("display_order") or 0),
    )


class MySQLIncidenceTypeCatalog(IncidenceTypeCatalog):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, incidence_type_id: int) -> Optional[IncidenceType]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_SELECT + " WHERE incidence_type_id=%s", (int(incidence_type_id),))
            r = fetchone(cur)
            return _to_incidence_type(r) if r else None

    def list_requestable(self) -> Sequence[IncidenceType]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_SELECT + " WHERE is_requestable=1 ORDER BY display_order, name")
            return [_to_incidence_type(r) for r in fetchall(cur)]
