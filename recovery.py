import logging
from typing import Iterable, Tuple

from access import normalize_code
from schemas import DEFAULT_ADMIN_PASSWORD, AdminConfig, Collection

logger = logging.getLogger("seeding")


def reset(phrase: str, admin_config: AdminConfig, collections: Iterable[Collection] = ()) -> Tuple[bool, AdminConfig]:
    """Reset the admin password to the default when the recovery phrase matches.

    Returns (ok, config). On mismatch the given config is returned unchanged.
    A blank stored phrase never matches.
    """
    stored = admin_config.recovery_phrase.strip().lower()
    if not stored or (phrase or "").strip().lower() != stored:
        logger.info("Admin password recovery failed")
        return False, admin_config

    default = normalize_code(DEFAULT_ADMIN_PASSWORD)
    for col in collections:
        if any(normalize_code(ac.code) == default for ac in col.access_codes):
            logger.warning(f"Default admin password shadows an access code of collection {col.id}")

    logger.info("Admin password reset to default")
    return True, admin_config.model_copy(update={"password": DEFAULT_ADMIN_PASSWORD})
