import pytest

from core.samba_client import (
    LocalStorageClient, SambaClient, TransportError, create_transport, parse_samba_path
)
from utils.config import ConfigMissing


def test_parse_samba_path_splits_host_share_and_directory():
    assert parse_samba_path("smb://fileserver/enroll/in/queue") == ("fileserver", "enroll", "in\\queue")
    assert parse_samba_path("smb://fileserver/enroll") == ("fileserver", "enroll", "")


def test_parse_samba_path_requires_host():
    with pytest.raises(TransportError, match="Invalid SMB path"):
        parse_samba_path("not a url")


def test_select_share_requires_share_name():
    client = SambaClient("smb://fileserver", "user", "pw")

    with pytest.raises(TransportError, match="Missing share name in SMB path"):
        client.select_share(client.share)


def test_local_storage_writes_payload(tmp_path):
    storage = tmp_path / "TestStorage"

    with LocalStorageClient(storage) as client:
        message = client.save("scx-INV-1.json", b"{}")

    assert (storage / "scx-INV-1.json").read_bytes() == b"{}"
    assert message == f"File saved locally to {storage / 'scx-INV-1.json'}"


def test_create_transport_in_test_mode(config, secrets, tmp_path):
    config.save(test_mode=True)
    config.environ["ENROLL_TEST_STORAGE"] = str(tmp_path)

    transport = create_transport(config, secrets)

    assert isinstance(transport, LocalStorageClient)
    assert transport.storage_dir == tmp_path


def test_create_transport_needs_share_settings(config, secrets):
    config.save(test_mode=False)

    with pytest.raises(ConfigMissing) as excinfo:
        create_transport(config, secrets)

    assert "ENROLL_SAMBA_PASSWORD" in excinfo.value.missing_vars


def test_create_transport_builds_samba_client(config, secrets):
    config.save(test_mode=False, samba_path="smb://fileserver/enroll/in")
    secrets.set("svc", "pw")

    transport = create_transport(config, secrets)

    assert isinstance(transport, SambaClient)
    assert transport.host == "fileserver"
    assert transport.share == "enroll"
    assert transport.directory == "in"
