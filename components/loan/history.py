"""
Status history stored with each loan.

The history is an append-only list of entries kept as a JSON array in
``Prestamos.historial_estados``. Everything outside this module works with
``HistoryEntry`` objects; the JSON text only exists at the persistence edge.
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


class HistoryEntry(BaseModel):
    """One status change: status name, who did it and when."""
    estado: str
    usuario: str
    fecha: str

    class Config:
        # older rows stored the numeric status id instead of its name
        coerce_numbers_to_str = True


_history_adapter = TypeAdapter(List[HistoryEntry])


def format_timestamp(moment: Optional[datetime] = None) -> str:
    """UTC timestamp in the ``YYYY-MM-DD HH:MM:SS`` form used by the history."""
    moment = moment or datetime.now(timezone.utc)
    return moment.strftime(TIMESTAMP_FORMAT)


def new_entry(status_name: str, actor: str, moment: Optional[datetime] = None) -> HistoryEntry:
    return HistoryEntry(estado=status_name, usuario=actor, fecha=format_timestamp(moment))


def serialize_history(history: List[HistoryEntry]) -> str:
    return _history_adapter.dump_json(history).decode("utf-8")


def parse_history(raw: Optional[str]) -> List[HistoryEntry]:
    """
    Parse the stored JSON text.

    Empty or malformed values yield an empty history instead of failing, the
    history is display data and must never break a request.
    """
    if not raw:
        return []
    try:
        return _history_adapter.validate_json(raw)
    except PydanticValidationError:
        logger.warning("Discarding unreadable status history: %.80r", raw)
        return []


def append_entry(raw: Optional[str], entry: HistoryEntry) -> List[HistoryEntry]:
    """Parsed history with ``entry`` added at the end."""
    history = parse_history(raw)
    history.append(entry)
    return history
