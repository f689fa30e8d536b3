"""Tests for environment-driven settings."""

from __future__ import annotations

import os
from unittest.mock import patch

from unidep.core.config import Settings


class TestMavenSettings:
    def test_explicit_path(self, tmp_path):
        with patch.dict(os.environ, {"UNIDEP_MAVEN_SETTINGS": str(tmp_path / "s.xml")}):
            assert Settings.from_env().maven_settings == str(tmp_path / "s.xml")

    def test_empty_value_disables(self, tmp_path):
        with patch.dict(os.environ, {"UNIDEP_MAVEN_SETTINGS": "", "HOME": str(tmp_path)}):
            assert Settings.from_env().maven_settings is None

    def test_user_settings_before_installation(self, tmp_path, write):
        user = write("home/.m2/settings.xml", "<settings/>")
        write("maven/conf/settings.xml", "<settings/>")
        env = {"HOME": str(tmp_path / "home"), "M2_HOME": str(tmp_path / "maven")}
        with patch.dict(os.environ, env):
            os.environ.pop("UNIDEP_MAVEN_SETTINGS", None)
            assert Settings.from_env().maven_settings == str(user)

    def test_installation_settings(self, tmp_path, write):
        installed = write("maven/conf/settings.xml", "<settings/>")
        env = {"HOME": str(tmp_path / "home"), "M2_HOME": str(tmp_path / "maven")}
        with patch.dict(os.environ, env):
            os.environ.pop("UNIDEP_MAVEN_SETTINGS", None)
            assert Settings.from_env().maven_settings == str(installed)

    def test_nothing_found(self, tmp_path):
        with patch.dict(os.environ, {"HOME": str(tmp_path)}):
            os.environ.pop("UNIDEP_MAVEN_SETTINGS", None)
            os.environ.pop("M2_HOME", None)
            assert Settings.from_env().maven_settings is None


def test_log_settings():
    with patch.dict(os.environ, {"UNIDEP_LOG_LEVEL": "debug", "UNIDEP_LOG_FORMAT": "json"}):
        settings = Settings.from_env()
    assert (settings.log_level, settings.log_format) == ("DEBUG", "json")
