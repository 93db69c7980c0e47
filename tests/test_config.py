from pathlib import Path

from core.models import EnrollmentSettings
from utils.config import Config, SecretStore


def test_defaults_when_nothing_is_configured(config):
    assert config.snapshot() == EnrollmentSettings(
        location_group_id="DefaultGroup",
        platform_id=12,
        message_type=0,
        ownership="C",
        samba_path=None,
        test_mode=True,
    )
    assert not config.is_configured


def test_save_persists_to_env_file(config, env_file):
    config.save(location_group_id="G1", platform_id=14, ownership="E",
                message_type=1, samba_path="smb://srv/share/dir", test_mode=False)

    reloaded = Config(env_file, environ={})
    assert reloaded.location_group_id == "G1"
    assert reloaded.platform_id == 14
    assert reloaded.ownership == "E"
    assert reloaded.message_type == 1
    assert reloaded.samba_path == "smb://srv/share/dir"
    assert reloaded.test_mode is False
    assert reloaded.is_configured


def test_save_leaves_unset_fields_untouched(config):
    config.save(location_group_id="G1")
    config.save(ownership="E")

    assert config.location_group_id == "G1"
    assert config.ownership == "E"


def test_non_numeric_ids_fall_back_to_zero(config):
    config.save(platform_id="abc", message_type="x1")

    assert config.platform_id == 0
    assert config.message_type == 0


def test_clear_removes_configuration(config, env_file):
    config.save(location_group_id="G1", platform_id=14, ownership="E",
                message_type=1, samba_path="smb://srv/share")

    config.clear()

    assert not config.is_configured
    assert Config(env_file, environ={}).location_group_id == "DefaultGroup"


def test_process_environment_wins_over_file(env_file):
    env_file.write_text("ENROLL_OWNERSHIP=E\n", encoding="utf-8")

    config = Config(env_file, environ={"ENROLL_OWNERSHIP": "C"})

    assert config.ownership == "C"


def test_test_mode_values(env_file):
    assert Config(env_file, environ={"ENROLL_TEST_MODE": "yes"}).test_mode
    assert not Config(env_file, environ={"ENROLL_TEST_MODE": "0"}).test_mode


def test_test_storage_dir_override(env_file, tmp_path):
    config = Config(env_file, environ={"ENROLL_TEST_STORAGE": str(tmp_path / "out")})

    assert config.test_storage_dir == Path(tmp_path / "out")


def test_secrets_round_trip_and_clear(secrets, env_file):
    secrets.set("svc-enroll", "s3cret")

    reloaded = SecretStore(env_file, environ={})
    assert reloaded.get_username() == "svc-enroll"
    assert reloaded.get_password() == "s3cret"

    reloaded.clear()
    assert reloaded.get_username() is None
    assert SecretStore(env_file, environ={}).get_password() is None


def test_missing_transport_vars(config, secrets):
    assert config.get_missing_transport_vars(secrets) == [
        "ENROLL_SAMBA_PATH", "ENROLL_SAMBA_USERNAME", "ENROLL_SAMBA_PASSWORD"
    ]

    config.save(samba_path="smb://srv/share")
    secrets.set("svc", "pw")

    assert config.validate_transport_config(secrets)
