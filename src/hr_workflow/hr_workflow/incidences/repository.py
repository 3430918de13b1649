from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import IncidenceType


class IncidenceTypeCatalog(Protocol):
    def get_by_id(self, incidence_type_id: int) -> Optional[IncidenceType]:
        raise NotImplementedError

    def list_requestable(self) -> Sequence[IncidenceType]:
        """Types employees may pick when filing a request, in display order."""

        raise NotImplementedError
