import json
import logging
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import BaseModel, ValidationError

from relay_alarm.utils.security import verify_password

logger = logging.getLogger(__name__)


class User(BaseModel):
    username: str
    hashed_password: str
    role: str = "user"


class UserStore:
    """
    Operator accounts, read once from a JSON list of users. Accounts are
    created by hand; there is no default user.
    """

    def __init__(self, path: Path):
        self.path = path
        self._users: Dict[str, User] = {}

    def __len__(self) -> int:
        return len(self._users)

    @property
    def usernames(self) -> List[str]:
        return list(self._users)

    def load(self) -> int:
        """Load users from file. Returns the number of users loaded."""
        self._users = {}
        if not self.path.exists():
            logger.error(f"Users file not found at: {self.path}")
            logger.error("Create it with at least one user to enable dashboard login.")
            return 0
        try:
            with open(self.path, "r") as f:
                data = json.load(f)
            users = [User.model_validate(entry) for entry in data]
        except (json.JSONDecodeError, ValidationError, TypeError) as e:
            logger.error(f"Error loading users file {self.path}: {e}")
            return 0

        self._users = {user.username: user for user in users}
        logger.info(f"Users loaded: {self.usernames}")
        return len(self._users)

    def authenticate(self, username: str, password: str) -> Optional[dict]:
        logger.info(f"🔑 Attempting authentication for user: {username}")
        user = self._users.get(username)
        if user is not None and verify_password(password, user.hashed_password):
            logger.info(f"✅ User '{username}' authenticated successfully (role: {user.role}).")
            return {"username": user.username, "role": user.role}

        logger.warning(f"⚠️ Failed authentication attempt for user: {username}")
        return None
