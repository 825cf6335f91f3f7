"""Admin login gate backed by the store's admin flag."""

import logging
import secrets

from .config import ImagerConfig
from .config_store import ConfigStore
from .errors import ValidationError

logger = logging.getLogger(__name__)


class AdminSession:
    """Checks admin credentials and remembers the login in the store.

    Args:
        store: Store holding the admin flag.
        config: Supplies ``admin_username`` and ``admin_password``.
    """

    def __init__(self, store: ConfigStore, config: ImagerConfig) -> None:
        self._store = store
        self._config = config

    @property
    def is_authenticated(self) -> bool:
        return self._store.read_admin_flag()

    def login(self, username: str, password: str) -> bool:
        """Open an admin session.

        Raises:
            ValidationError: If the credentials do not match.
        """
        user_ok = secrets.compare_digest(username.encode(), self._config.admin_username.encode())
        password_ok = secrets.compare_digest(
            password.encode(), self._config.admin_password.encode()
        )
        if not (user_ok and password_ok):
            logger.warning("Rejected admin login for %r", username)
            raise ValidationError("Invalid credentials")

        self._store.write_admin_flag(True)
        logger.info("Admin logged in")
        return True

    def logout(self) -> None:
        self._store.write_admin_flag(False)
        logger.info("Admin logged out")
