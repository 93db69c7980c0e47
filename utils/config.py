# =============================================================================
# utils/config.py - Configuration management
# =============================================================================

import os
from pathlib import Path
from typing import Optional, List, MutableMapping, Union
from dotenv import load_dotenv, find_dotenv, dotenv_values, set_key, unset_key

from core.models import EnrollmentSettings

TRUE_VALUES = {'1', 'true', 'yes', 'on'}

DEFAULT_TEST_STORAGE = Path.home() / "Downloads" / "TestStorage"


class ConfigMissing(Exception):
    """Raised when required configuration or credentials are absent"""

    def __init__(self, missing_vars: List[str]):
        self.missing_vars = list(missing_vars)
        super().__init__(f"Missing configuration: {', '.join(self.missing_vars)}")


def _parse_int(raw: Optional[str], default: int) -> int:
    if raw is None or raw.strip() == '':
        return default
    try:
        return int(raw.strip())
    except ValueError:
        return 0


class DotenvStore:
    """Key/value store backed by the process environment and a .env file"""

    def __init__(self, env_file: Optional[Union[str, Path]] = None,
                 environ: Optional[MutableMapping[str, str]] = None):
        self.env_file = Path(env_file) if env_file else Path(find_dotenv(usecwd=True) or '.env')

        if environ is None:
            load_dotenv(self.env_file)
            environ = os.environ
        else:
            for key, value in dotenv_values(self.env_file).items():
                if value is not None:
                    environ.setdefault(key, value)
        self.environ = environ

    def _get(self, name: str) -> Optional[str]:
        value = self.environ.get(name)
        return value if value else None

    def _set(self, name: str, value: str) -> None:
        self.env_file.touch(exist_ok=True)
        set_key(str(self.env_file), name, value)
        self.environ[name] = value

    def _unset(self, name: str) -> None:
        if self.env_file.exists() and name in dotenv_values(self.env_file):
            unset_key(str(self.env_file), name)
        self.environ.pop(name, None)


class Config(DotenvStore):
    """Configuration management"""

    LOCATION_GROUP_ID = "ENROLL_LOCATION_GROUP_ID"
    PLATFORM_ID = "ENROLL_PLATFORM_ID"
    MESSAGE_TYPE = "ENROLL_MESSAGE_TYPE"
    OWNERSHIP = "ENROLL_OWNERSHIP"
    SAMBA_PATH = "ENROLL_SAMBA_PATH"
    TEST_MODE = "ENROLL_TEST_MODE"
    TEST_STORAGE = "ENROLL_TEST_STORAGE"
    SEND_TOKEN = "ENROLL_SEND_TOKEN"

    # Fields edited together and wiped by clear()
    CONFIG_VARS = (LOCATION_GROUP_ID, PLATFORM_ID, OWNERSHIP, MESSAGE_TYPE, SAMBA_PATH)

    @property
    def location_group_id(self) -> str:
        return self._get(self.LOCATION_GROUP_ID) or "DefaultGroup"

    @property
    def platform_id(self) -> int:
        return _parse_int(self._get(self.PLATFORM_ID), 12)

    @property
    def message_type(self) -> int:
        return _parse_int(self._get(self.MESSAGE_TYPE), 0)

    @property
    def ownership(self) -> str:
        return self._get(self.OWNERSHIP) or "C"

    @property
    def samba_path(self) -> Optional[str]:
        return self._get(self.SAMBA_PATH)

    @property
    def test_mode(self) -> bool:
        raw = self._get(self.TEST_MODE)
        # Unset means test mode
        if raw is None:
            return True
        return raw.strip().lower() in TRUE_VALUES

    @property
    def test_storage_dir(self) -> Path:
        raw = self._get(self.TEST_STORAGE)
        return Path(raw).expanduser() if raw else DEFAULT_TEST_STORAGE

    @property
    def send_token(self) -> Optional[str]:
        return self._get(self.SEND_TOKEN)

    @property
    def is_configured(self) -> bool:
        """All editable configuration fields are present"""
        return all(self._get(name) for name in self.CONFIG_VARS)

    def snapshot(self) -> EnrollmentSettings:
        """Current values, frozen for one assembly run"""
        return EnrollmentSettings(
            location_group_id=self.location_group_id,
            platform_id=self.platform_id,
            message_type=self.message_type,
            ownership=self.ownership,
            samba_path=self.samba_path,
            test_mode=self.test_mode
        )

    def save(self, location_group_id: Optional[str] = None, platform_id: Optional[Union[int, str]] = None,
             ownership: Optional[str] = None, message_type: Optional[Union[int, str]] = None,
             samba_path: Optional[str] = None, test_mode: Optional[bool] = None) -> None:
        """Persist the given fields; None leaves a field untouched"""
        updates = [
            (self.LOCATION_GROUP_ID, location_group_id),
            (self.PLATFORM_ID, platform_id),
            (self.OWNERSHIP, ownership),
            (self.MESSAGE_TYPE, message_type),
            (self.SAMBA_PATH, samba_path),
        ]
        for name, value in updates:
            if value is not None:
                self._set(name, str(value))

        if test_mode is not None:
            self._set(self.TEST_MODE, 'true' if test_mode else 'false')

    def clear(self) -> None:
        """Remove every editable configuration field"""
        for name in self.CONFIG_VARS:
            self._unset(name)

    def validate_transport_config(self, secrets: 'SecretStore') -> bool:
        """Validate that all required share configuration is present"""
        return not self.get_missing_transport_vars(secrets)

    def get_missing_transport_vars(self, secrets: 'SecretStore') -> List[str]:
        """Get list of missing share configuration variables"""
        vars_and_names = [
            (self.samba_path, self.SAMBA_PATH),
            (secrets.get_username(), SecretStore.USERNAME),
            (secrets.get_password(), SecretStore.PASSWORD)
        ]
        return [name for var, name in vars_and_names if not var]


class SecretStore(DotenvStore):
    """Share credentials"""

    USERNAME = "ENROLL_SAMBA_USERNAME"
    PASSWORD = "ENROLL_SAMBA_PASSWORD"

    def get_username(self) -> Optional[str]:
        return self._get(self.USERNAME)

    def get_password(self) -> Optional[str]:
        return self._get(self.PASSWORD)

    def set(self, username: str, password: str) -> None:
        self._set(self.USERNAME, username)
        self._set(self.PASSWORD, password)

    def clear(self) -> None:
        self._unset(self.USERNAME)
        self._unset(self.PASSWORD)
