# =============================================================================
# core/samba_client.py - SMB share client and local test storage
# =============================================================================

import logging
from pathlib import Path
from typing import Optional, Tuple, Union
from urllib.parse import urlparse

import smbclient
from smbprotocol.exceptions import SMBException

from utils.config import Config, ConfigMissing, SecretStore


class TransportError(Exception):
    """Raised when a payload cannot be delivered"""


def parse_samba_path(samba_path: str) -> Tuple[str, str, str]:
    """Split smb://host/share/dir into host, share and the directory inside the share"""
    parsed = urlparse(samba_path)
    if not parsed.hostname:
        raise TransportError("Invalid SMB path")

    components = [part for part in parsed.path.split('/') if part]
    share = components[0] if components else ''
    directory = '\\'.join(components[1:])
    return parsed.hostname, share, directory


class SambaClient:
    """Uploads payload files to an SMB share"""

    def __init__(self, samba_path: str, username: str, password: str, port: int = 445):
        self.samba_path = samba_path
        self.host, self.share, self.directory = parse_samba_path(samba_path)
        self.username = username
        self.password = password
        self.port = port
        self.connected = False
        self.share_name: Optional[str] = None
        self.logger = logging.getLogger(__name__)

    def __enter__(self):
        """Context manager entry"""
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit"""
        self.close()

    def open(self) -> None:
        """Log in and attach to the configured share"""
        self.connect()
        self.select_share(self.share)

    def close(self) -> None:
        self.disconnect()

    def connect(self) -> None:
        """Establish an authenticated session with the server"""
        try:
            smbclient.register_session(
                self.host,
                username=self.username,
                password=self.password,
                port=self.port
            )
        except (SMBException, OSError, ValueError) as e:
            self.logger.error(f"Failed to connect to {self.host}: {e}")
            raise TransportError(f"Login to {self.host} failed: {e}") from e

        self.connected = True
        self.logger.info(f"Successfully connected to {self.host}")

    def select_share(self, share_name: str) -> None:
        """Check the share is reachable and use it for uploads"""
        if not share_name:
            raise TransportError("Missing share name in SMB path")
        if not self.connected:
            raise TransportError(f"Not connected to {self.host}")

        try:
            smbclient.stat(self._unc_path(share_name))
        except (SMBException, OSError) as e:
            self.logger.error(f"Cannot open share {share_name}: {e}")
            raise TransportError(f"Cannot open share {share_name}: {e}") from e

        self.share_name = share_name

    def upload(self, content: bytes, path: str) -> None:
        """Write content to path, relative to the selected share"""
        if not self.share_name:
            raise TransportError("No share selected")

        remote_path = self._unc_path(self.share_name, path.replace('/', '\\').strip('\\'))
        try:
            with smbclient.open_file(remote_path, mode='wb', port=self.port) as remote_file:
                remote_file.write(content)
        except (SMBException, OSError) as e:
            self.logger.error(f"Upload of {remote_path} failed: {e}")
            raise TransportError(f"Error while sending the file: {e}") from e

        self.logger.debug(f"Uploaded {len(content)} bytes to {remote_path}")

    def disconnect(self) -> None:
        """Close the session with the server"""
        if self.connected:
            try:
                smbclient.delete_session(self.host, port=self.port)
            except (SMBException, OSError) as e:
                self.logger.warning(f"Error while closing session with {self.host}: {e}")
            self.connected = False
            self.share_name = None
            self.logger.info(f"Disconnected from {self.host}")

    def save(self, filename: str, content: bytes) -> str:
        """Upload one payload file into the configured directory"""
        path = f"{self.directory}\\{filename}" if self.directory else filename
        self.upload(content, path)
        return f"File saved successfully to {self.samba_path}"

    def _unc_path(self, *parts: str) -> str:
        return '\\\\' + '\\'.join([self.host, *[part for part in parts if part]])


class LocalStorageClient:
    """Writes payload files to a local folder instead of the share"""

    def __init__(self, storage_dir: Union[str, Path]):
        self.storage_dir = Path(storage_dir)
        self.logger = logging.getLogger(__name__)

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def open(self) -> None:
        try:
            self.storage_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise TransportError(f"Error while saving locally: {e}") from e

    def close(self) -> None:
        pass

    def save(self, filename: str, content: bytes) -> str:
        file_path = self.storage_dir / filename
        try:
            file_path.write_bytes(content)
        except OSError as e:
            self.logger.error(f"Local save of {file_path} failed: {e}")
            raise TransportError(f"Error while saving locally: {e}") from e
        return f"File saved locally to {file_path}"


def create_transport(config: Config, secrets: SecretStore) -> Union[SambaClient, LocalStorageClient]:
    """Local storage in test mode, the configured share otherwise"""
    if config.test_mode:
        return LocalStorageClient(config.test_storage_dir)

    missing_vars = config.get_missing_transport_vars(secrets)
    if missing_vars:
        raise ConfigMissing(missing_vars)

    return SambaClient(config.samba_path, secrets.get_username(), secrets.get_password())
