import logging
from typing import Dict

from config import LEDGER_SETTING_KEY
from models.entities import ScheduledTrigger

logger = logging.getLogger(__name__)


class LedgerMixin:
    """Persistence for the scheduled-alarm ledger.

    The ledger is one JSON object in the settings table, keyed by
    "<task id>:<trigger minute>".
    """

    async def load_ledger(self) -> Dict[str, ScheduledTrigger]:
        """Load the ledger. Unreadable data degrades to an empty mapping."""
        raw = await self.get_setting(LEDGER_SETTING_KEY, {})
        if not isinstance(raw, dict):
            logger.warning(f"Discarding malformed alarm ledger of type {type(raw).__name__}")
            return {}

        ledger: Dict[str, ScheduledTrigger] = {}
        for key, entry in raw.items():
            try:
                ledger[key] = ScheduledTrigger.from_dict(entry)
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Dropping malformed ledger entry {key!r}: {e}")
        return ledger

    async def save_ledger(self, ledger: Dict[str, ScheduledTrigger]) -> None:
        await self.set_setting(
            LEDGER_SETTING_KEY,
            {key: entry.to_dict() for key, entry in ledger.items()},
        )
