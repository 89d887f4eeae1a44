"""Address Cache - Memoized resolution of address references"""
from typing import Awaitable, Callable, Dict, List, Optional, Set

from ..config.settings import settings
from ..domain.enums import AddressCacheState, CompositeKind
from ..domain.models import AddressCacheEntry, PendingAddressData, StoredSecretValue
from ..utils.idgen import is_pending_reference_uid
from ..utils.logger import get_logger
from .composites import COMPOSITE_SHAPES

logger = get_logger(__name__)


ReferenceResolver = Callable[[str], Awaitable[Optional[StoredSecretValue]]]

LOADING_TEXT = "Loading address..."
NOT_FOUND_TEXT = "Address Not Found"
ERROR_TEXT = "Address details unavailable"
EMPTY_TEXT = "No address available"


class AddressCache:
    """
    Resolve address references once and remember the outcome

    Resolved, not-found and error outcomes are all terminal: a later
    resolve for the same UID returns the cached entry unless bypass is set.
    Pending-creation placeholders are never looked up; they carry the
    locally entered address instead.
    """

    def __init__(self, resolver: ReferenceResolver):
        self._resolver = resolver
        self._entries: Dict[str, AddressCacheEntry] = {}
        self._loading: Set[str] = set()

    def get(self, uid: str) -> Optional[AddressCacheEntry]:
        """Current entry for a UID without triggering a lookup"""
        if uid in self._loading:
            return AddressCacheEntry(uid=uid, state=AddressCacheState.LOADING)
        return self._entries.get(uid)

    async def resolve(self, uid: str, bypass: bool = False) -> AddressCacheEntry:
        """
        Resolve a reference UID

        Args:
            uid: Reference UID
            bypass: Look up again even if an outcome is cached

        Returns:
            The cached or freshly stored entry
        """
        if is_pending_reference_uid(uid):
            entry = self._entries.get(uid)
            if entry is not None:
                return entry
            logger.debug("Pending reference without local data", extra={"reference_uid": uid})
            return AddressCacheEntry(
                uid=uid,
                state=AddressCacheState.NOT_FOUND,
                message="Pending address data missing",
                pending=True,
            )

        if not bypass:
            if uid in self._loading:
                return AddressCacheEntry(uid=uid, state=AddressCacheState.LOADING)
            cached = self._entries.get(uid)
            if cached is not None:
                return cached

        self._loading.add(uid)
        try:
            data = await self._resolver(uid)
            if data is None:
                entry = AddressCacheEntry(uid=uid, state=AddressCacheState.NOT_FOUND)
                logger.info("Address reference not found", extra={"reference_uid": uid})
            else:
                entry = AddressCacheEntry(uid=uid, state=AddressCacheState.RESOLVED, data=data)
        except Exception as e:
            entry = AddressCacheEntry(uid=uid, state=AddressCacheState.ERROR, message=str(e))
            logger.warning(f"Address reference lookup failed: {e}", extra={"reference_uid": uid})
        finally:
            self._loading.discard(uid)

        self._entries[uid] = entry
        return entry

    async def refresh(self, uids: List[str]) -> List[AddressCacheEntry]:
        """Re-resolve several references, bypassing cached outcomes"""
        return [await self.resolve(uid, bypass=True) for uid in uids]

    def register_pending(self, uid: str, data: PendingAddressData) -> AddressCacheEntry:
        """Cache locally entered data for a pending-creation placeholder"""
        entry = AddressCacheEntry(
            uid=uid,
            state=AddressCacheState.RESOLVED,
            data=data.to_secret_value(uid),
            pending=True,
        )
        self._entries[uid] = entry
        return entry

    def remove(self, uid: str) -> None:
        """Forget one reference; only done when the user removes it"""
        self._entries.pop(uid, None)

    def promote_pending(self, pending_uid: str, created_uid: str) -> Optional[AddressCacheEntry]:
        """Re-key a pending placeholder under the UID the vault assigned it"""
        entry = self._entries.pop(pending_uid, None)
        if entry is None or entry.data is None:
            return None
        promoted = AddressCacheEntry(
            uid=created_uid,
            state=AddressCacheState.RESOLVED,
            data=entry.data.model_copy(update={"record_uid": created_uid}),
        )
        self._entries[created_uid] = promoted
        return promoted

    def format_display(self, uid: str) -> str:
        return format_address_display(self.get(uid))


def format_address_display(entry: Optional[AddressCacheEntry]) -> str:
    """
    One-line text for an address reference

    Title, street lines, city/state/zip and country, in that order; the
    country is left out when it is a home country.

    Examples:
        Home: 1 Main St, Apt 2 | Springfield, IL, 62701
        Office: 5 Rue X | Paris, 75001 | France
    """
    if entry is None or entry.state == AddressCacheState.LOADING:
        return LOADING_TEXT
    if entry.state == AddressCacheState.NOT_FOUND:
        return NOT_FOUND_TEXT
    if entry.state == AddressCacheState.ERROR or entry.data is None:
        return ERROR_TEXT

    parts = _address_parts(entry.data)
    title = entry.data.title or ""
    if not parts:
        return f"{title}: {EMPTY_TEXT}" if title else EMPTY_TEXT

    streets = ", ".join(parts[key] for key in ("street1", "street2") if parts.get(key))
    locality = ", ".join(parts[key] for key in ("city", "state", "zip") if parts.get(key))
    country = parts.get("country", "")
    if country.strip().upper() in settings.home_country_codes_list:
        country = ""

    body = " | ".join(segment for segment in (streets, locality, country) if segment)
    if not body:
        return f"{title}: {EMPTY_TEXT}" if title else EMPTY_TEXT
    return f"{title}: {body}" if title else body


def _address_parts(data: StoredSecretValue) -> Dict[str, str]:
    shape = COMPOSITE_SHAPES[CompositeKind.ADDRESS]
    for entry in data.all_entries():
        if entry.type != CompositeKind.ADDRESS.value:
            continue
        parts = shape.flatten(entry.first_value)
        if parts:
            return parts
    return {}
