import logging
from typing import Iterable, List, Optional

from schemas import AccessCodeConfig, AdminConfig, AdminSession, Collection, InfluencerSession, Session

logger = logging.getLogger("seeding")


def normalize_code(code: str) -> str:
    return (code or "").strip().upper()


def resolve(submitted_code: str, admin_config: AdminConfig, collections: Iterable[Collection]) -> Optional[Session]:
    """Resolve a submitted code into a session.

    The admin password always wins. Otherwise collections are scanned in stored
    order, and their codes in stored order; the first match gives an influencer
    session. Returns None when nothing matches.
    """
    submitted = normalize_code(submitted_code)
    if not submitted:
        return None

    if submitted == normalize_code(admin_config.password):
        return AdminSession()

    for col in collections:
        for ac in col.access_codes:
            if normalize_code(ac.code) == submitted:
                return InfluencerSession(collection_id=col.id, access_code=ac.code, limit=ac.limit)
    return None


def find_code_conflicts(
    collection_id: str,
    access_codes: List[AccessCodeConfig],
    admin_config: AdminConfig,
    collections: Iterable[Collection],
) -> List[str]:
    """Codes in `access_codes` that could never resolve to `collection_id`."""
    taken = {}
    for col in collections:
        if col.id == collection_id:
            continue
        for ac in col.access_codes:
            taken.setdefault(normalize_code(ac.code), col.id)

    admin = normalize_code(admin_config.password)
    seen = set()
    conflicts = []
    for ac in access_codes:
        key = normalize_code(ac.code)
        if not key:
            continue
        if key == admin or key in taken or key in seen:
            conflicts.append(ac.code)
        seen.add(key)
    if conflicts:
        logger.info(f"Rejected {len(conflicts)} conflicting access code(s) for collection {collection_id}")
    return conflicts
