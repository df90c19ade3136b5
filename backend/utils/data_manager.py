import json
import logging
import threading
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

ROLES = ("user", "driver", "admin")


class DuplicateUser(Exception):
    def __init__(self, field: str):
        super().__init__(f"{field} already registered")
        self.field = field


# Helper function to load data from JSON files
def load_data(data_dir: Path, filename: str) -> List[Dict[str, Any]]:
    file_path = Path(data_dir) / f"{filename}.json"
    file_path.parent.mkdir(parents=True, exist_ok=True)
    if not file_path.exists():
        with open(file_path, 'w') as f:
            json.dump([], f)
    with open(file_path, 'r') as f:
        return json.load(f)


# Helper function to save data to JSON files
def save_data(data_dir: Path, filename: str, data: List[Dict[str, Any]]):
    file_path = Path(data_dir) / f"{filename}.json"
    file_path.parent.mkdir(parents=True, exist_ok=True)
    with open(file_path, 'w') as f:
        json.dump(data, f, indent=4)


def public_view(user: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in user.items() if k != "password"}


class UserStore:
    """User records kept in ``users.json`` under the data directory.

    Email and university ID are unique. The file is rewritten on every change.
    """

    filename = "users"

    def __init__(self, data_dir: Path):
        self.data_dir = Path(data_dir)
        self._lock = threading.Lock()
        self._users: List[Dict[str, Any]] = load_data(self.data_dir, self.filename)

    def _save(self):
        save_data(self.data_dir, self.filename, self._users)

    def find_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            return next((dict(u) for u in self._users if u["email"] == email), None)

    def find_by_university_id(self, university_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            return next((dict(u) for u in self._users if u["universityID"] == university_id), None)

    def get(self, user_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            return next((dict(u) for u in self._users if u["id"] == user_id), None)

    def all(self) -> List[Dict[str, Any]]:
        with self._lock:
            return [dict(u) for u in self._users]

    def create(self, name: str, email: str, university_id: str, password_hash: str, role: str = "user") -> Dict[str, Any]:
        if role not in ROLES:
            raise ValueError(f"Unknown role: {role}")
        with self._lock:
            if any(u["email"] == email for u in self._users):
                raise DuplicateUser("email")
            if any(u["universityID"] == university_id for u in self._users):
                raise DuplicateUser("universityID")
            user = {
                "id": uuid.uuid4().hex,
                "name": name,
                "email": email,
                "universityID": university_id,
                "password": password_hash,
                "role": role,
                "date": datetime.now(timezone.utc).isoformat(),
            }
            self._users.append(user)
            self._save()
        logger.info("Created %s account %s", role, email)
        return dict(user)

    def delete(self, user_id: str) -> bool:
        with self._lock:
            remaining = [u for u in self._users if u["id"] != user_id]
            if len(remaining) == len(self._users):
                return False
            self._users = remaining
            self._save()
        return True
