"""Unit tests for sshd_settings module."""

import pytest

from sshauth.modules.sshd_settings import (
    ConfigIOError,
    ConfigNotFoundError,
    ConfigSettingApplier,
    LineState,
    SettingValidationError,
    apply_setting,
    effective_value,
    find_setting_lines,
    first_match_block,
    read_effective_settings,
    validate_setting,
)


def active_lines(path, name):
    lines = path.read_text().splitlines()
    return [line for line in lines if line.split() and line.split()[0] == name]


class TestFindSettingLines:
    """Tests for line classification."""

    def test_classifies_active_and_inactive(self):
        lines = [
            "#PasswordAuthentication yes\n",
            "PasswordAuthentication no\n",
            "  ##  PasswordAuthentication maybe\n",
        ]
        found = find_setting_lines(lines, "PasswordAuthentication")

        assert [f.state for f in found] == [LineState.INACTIVE, LineState.ACTIVE, LineState.INACTIVE]
        assert [f.value for f in found] == ["yes", "no", "maybe"]
        assert [f.index for f in found] == [0, 1, 2]

    def test_ignores_longer_keywords(self):
        lines = ["UsePAMExtra yes\n", "UsePAM yes\n"]
        found = find_setting_lines(lines, "UsePAM")
        assert len(found) == 1
        assert found[0].index == 1

    def test_case_sensitive(self):
        assert find_setting_lines(["passwordauthentication no\n"], "PasswordAuthentication") == []

    def test_ignores_prose_comments(self):
        lines = ["# To disable tunneled clear text passwords, change to no here!\n"]
        assert find_setting_lines(lines, "PasswordAuthentication") == []

    def test_equals_separator(self):
        found = find_setting_lines(["PasswordAuthentication=no\n"], "PasswordAuthentication")
        assert found[0].value == "no"


class TestEffectiveValue:
    """Tests for first-match lookup."""

    def test_first_active_line_wins(self):
        lines = ["PasswordAuthentication no\n", "PasswordAuthentication yes\n"]
        assert effective_value(lines, "PasswordAuthentication") == "no"

    def test_commented_lines_ignored(self):
        lines = ["#PasswordAuthentication no\n", "PasswordAuthentication yes\n"]
        assert effective_value(lines, "PasswordAuthentication") == "yes"

    def test_match_block_not_global(self):
        lines = ["Match User bob\n", "    PasswordAuthentication yes\n"]
        assert effective_value(lines, "PasswordAuthentication") is None

    def test_unset(self):
        assert effective_value(["Port 22\n"], "PasswordAuthentication") is None

    def test_first_match_block(self):
        lines = ["#Match User x\n", "Port 22\n", "Match Address 10.0.0.0/8\n"]
        assert first_match_block(lines) == 2


class TestValidateSetting:
    """Tests for setting validation."""

    @pytest.mark.parametrize("name", ["", "Password Authentication", "1Port", "Port;rm", "#Port"])
    def test_invalid_names(self, name):
        with pytest.raises(SettingValidationError):
            validate_setting(name, "yes")

    @pytest.mark.parametrize("value", ["", "   ", "no\nPermitRootLogin yes"])
    def test_invalid_values(self, value):
        with pytest.raises(SettingValidationError):
            validate_setting("PasswordAuthentication", value)

    def test_valid(self):
        validate_setting("AuthorizedKeysFile", ".ssh/authorized_keys .ssh/authorized_keys2")


class TestConfigSettingApplier:
    """Tests for ConfigSettingApplier.apply."""

    def test_existing_setting_deactivated(self, sshd_config):
        """An active line is commented and the new value appears later."""
        result = ConfigSettingApplier.apply(sshd_config, "PasswordAuthentication", "no")

        lines = sshd_config.read_text().splitlines()
        old_index = lines.index("#PasswordAuthentication yes")
        new_index = lines.index("PasswordAuthentication no")

        assert new_index > old_index
        assert "PasswordAuthentication yes" not in lines
        assert result.changed is True
        assert result.deactivated == 1
        assert result.line_number == new_index + 1

    def test_missing_setting_appended(self, sshd_config):
        ConfigSettingApplier.apply(sshd_config, "MaxStartups", "10:30:100")

        assert sshd_config.read_text().splitlines()[-1] == "MaxStartups 10:30:100"

    def test_no_deletion(self, sshd_config, sshd_config_text):
        original = sshd_config_text.splitlines()

        for name, value in [("PasswordAuthentication", "no"), ("PasswordAuthentication", "yes"),
                            ("UsePAM", "no"), ("Port", "2222")]:
            ConfigSettingApplier.apply(sshd_config, name, value)

        result = sshd_config.read_text().splitlines()
        assert len(result) >= len(original)
        for line in original:
            assert line in result or f"#{line}" in result

    def test_converges_to_single_active_line(self, tmp_path):
        path = tmp_path / "sshd_config"
        path.write_text("#Foo a\n# Foo b\nFoo c\n##Foo d\nFoo e\n")

        ConfigSettingApplier.apply(path, "Foo", "bar")

        assert active_lines(path, "Foo") == ["Foo bar"]
        assert effective_value(path.read_text().splitlines(), "Foo") == "bar"

    def test_already_commented_lines_not_reprefixed(self, tmp_path):
        path = tmp_path / "sshd_config"
        path.write_text("#PasswordAuthentication yes\nPasswordAuthentication yes\n")

        ConfigSettingApplier.apply(path, "PasswordAuthentication", "no")
        ConfigSettingApplier.apply(path, "PasswordAuthentication", "yes")

        lines = path.read_text().splitlines()
        assert lines == [
            "#PasswordAuthentication yes",
            "#PasswordAuthentication yes",
            "#PasswordAuthentication no",
            "PasswordAuthentication yes",
        ]
        assert not any(line.startswith("##") for line in lines)

    def test_reapply_is_byte_identical(self, sshd_config):
        ConfigSettingApplier.apply(sshd_config, "PasswordAuthentication", "no")
        first = sshd_config.read_bytes()

        result = ConfigSettingApplier.apply(sshd_config, "PasswordAuthentication", "no")

        assert result.changed is False
        assert result.deactivated == 0
        assert sshd_config.read_bytes() == first

    def test_same_value_but_earlier_commented_reference_after(self, tmp_path):
        """An active line followed by a later commented reference is moved to the end."""
        path = tmp_path / "sshd_config"
        path.write_text("UsePAM yes\n#UsePAM no\n")

        result = ConfigSettingApplier.apply(path, "UsePAM", "yes")

        assert result.changed is True
        assert path.read_text() == "#UsePAM yes\n#UsePAM no\nUsePAM yes\n"

    def test_inserted_before_match_block(self, ubuntu_sshd_config):
        ConfigSettingApplier.apply(ubuntu_sshd_config, "PasswordAuthentication", "no")

        lines = ubuntu_sshd_config.read_text().splitlines()
        match_index = lines.index("Match User anoncvs")
        new_index = lines.index("PasswordAuthentication no")

        assert new_index == match_index - 1
        # Active line inside the Match block is commented too
        assert "#    PasswordAuthentication yes" in lines
        assert effective_value(lines, "PasswordAuthentication") == "no"

    def test_match_block_reapply_idempotent(self, ubuntu_sshd_config):
        ConfigSettingApplier.apply(ubuntu_sshd_config, "PasswordAuthentication", "no")
        before = ubuntu_sshd_config.read_bytes()

        result = ConfigSettingApplier.apply(ubuntu_sshd_config, "PasswordAuthentication", "no")

        assert result.changed is False
        assert ubuntu_sshd_config.read_bytes() == before

    def test_missing_trailing_newline(self, tmp_path):
        path = tmp_path / "sshd_config"
        path.write_text("Port 22")

        ConfigSettingApplier.apply(path, "UsePAM", "yes")

        assert path.read_text() == "Port 22\nUsePAM yes\n"

    def test_crlf_preserved(self, tmp_path):
        path = tmp_path / "sshd_config"
        path.write_bytes(b"Port 22\r\nUsePAM no\r\n")

        ConfigSettingApplier.apply(path, "UsePAM", "yes")

        assert path.read_bytes() == b"Port 22\r\n#UsePAM no\r\nUsePAM yes\r\n"

    def test_form_feed_inside_comment_is_not_a_line_break(self, tmp_path):
        path = tmp_path / "sshd_config"
        path.write_bytes(b"# note\x0cPasswordAuthentication yes\nPort 22\n")

        result = ConfigSettingApplier.apply(path, "PasswordAuthentication", "no")

        assert result.deactivated == 0
        assert path.read_bytes() == b"# note\x0cPasswordAuthentication yes\nPort 22\nPasswordAuthentication no\n"

    def test_read_lines_splits_on_line_endings_only(self, tmp_path):
        path = tmp_path / "sshd_config"
        path.write_bytes(b"Banner none\x0b\x1c\xc2\x85\nPort 22\r\nUsePAM yes\rX11Forwarding no")

        assert ConfigSettingApplier.read_lines(path) == [
            "Banner none\x0b\x1c\x85\n",
            "Port 22\r\n",
            "UsePAM yes\r",
            "X11Forwarding no",
        ]

    def test_empty_file(self, tmp_path):
        path = tmp_path / "sshd_config"
        path.write_text("")

        result = ConfigSettingApplier.apply(path, "UsePAM", "yes")

        assert path.read_text() == "UsePAM yes\n"
        assert result.line_number == 1

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigNotFoundError, match="not found"):
            ConfigSettingApplier.apply(tmp_path / "nope", "UsePAM", "yes")

    def test_write_error_wrapped(self, sshd_config, monkeypatch):
        real_open = open

        def fake_open(file, mode="r", *args, **kwargs):
            if "w" in mode:
                raise PermissionError("Permission denied")
            return real_open(file, mode, *args, **kwargs)

        monkeypatch.setattr("sshauth.modules.sshd_settings.open", fake_open, raising=False)

        with pytest.raises(ConfigIOError, match="Failed to write"):
            ConfigSettingApplier.apply(sshd_config, "UsePAM", "no")

    def test_invalid_setting_does_not_touch_file(self, sshd_config, sshd_config_text):
        with pytest.raises(SettingValidationError):
            ConfigSettingApplier.apply(sshd_config, "Bad Name", "no")
        assert sshd_config.read_text() == sshd_config_text

    def test_force_reappends(self, tmp_path):
        path = tmp_path / "sshd_config"
        path.write_text("UsePAM yes\nPort 22\n")

        result = ConfigSettingApplier.apply(path, "UsePAM", "yes", force=True)

        assert result.changed is True
        assert path.read_text() == "#UsePAM yes\nPort 22\nUsePAM yes\n"

    def test_is_in_effect(self):
        assert ConfigSettingApplier.is_in_effect(["#UsePAM no\n", "UsePAM yes\n"], "UsePAM", "yes")
        assert not ConfigSettingApplier.is_in_effect(["UsePAM yes\n", "#UsePAM no\n"], "UsePAM", "yes")
        assert not ConfigSettingApplier.is_in_effect(["UsePAM no\n"], "UsePAM", "yes")
        assert not ConfigSettingApplier.is_in_effect(["Port 22\n"], "UsePAM", "yes")

    def test_apply_to_lines_is_pure(self):
        lines = ["UsePAM no\n"]
        new_lines, result = ConfigSettingApplier.apply_to_lines(lines, "UsePAM", "yes")

        assert lines == ["UsePAM no\n"]
        assert new_lines == ["#UsePAM no\n", "UsePAM yes\n"]
        assert result.line == "UsePAM yes"


class TestConvenienceFunctions:
    """Tests for module-level helpers."""

    def test_apply_setting(self, sshd_config):
        result = apply_setting(sshd_config, "PermitRootLogin", "no")
        assert result.changed is True
        assert active_lines(sshd_config, "PermitRootLogin") == ["PermitRootLogin no"]

    def test_read_effective_settings(self, sshd_config):
        values = read_effective_settings(sshd_config, ["PasswordAuthentication", "KbdInteractiveAuthentication"])
        assert values == {"PasswordAuthentication": "yes", "KbdInteractiveAuthentication": None}
