"""Tests for toolchain_installer.lib.shell_env — managed profile block."""

from __future__ import annotations

from toolchain_installer.lib.shell_env import (
    BLOCK_BEGIN,
    BLOCK_END,
    apply_to_environ,
    path_contains,
    read_block,
    render_block,
    replace_block,
    write_profile_block,
)


class TestRenderBlock:
    def test_exports_and_path(self):
        block = render_block({"JAVA_HOME": "/opt/my jdk"}, ["/opt/tc/bin"])
        lines = block.splitlines()

        assert lines[0] == BLOCK_BEGIN
        assert lines[-1] == BLOCK_END
        assert "export JAVA_HOME='/opt/my jdk'" in lines
        assert 'export PATH=/opt/tc/bin:"$PATH"' in lines

    def test_no_path_line_without_entries(self):
        assert "PATH" not in render_block({"A": "1"}, [])


class TestProfileBlock:
    def test_appends_to_existing_profile(self, tmp_path):
        profile = tmp_path / ".profile"
        profile.write_text("alias ll='ls -l'")
        block = render_block({"A": "1"}, [])

        assert write_profile_block(profile, block)

        text = profile.read_text()
        assert text.startswith("alias ll='ls -l'\n")
        assert read_block(profile) == block

    def test_rewrite_replaces_block_in_place(self, tmp_path):
        profile = tmp_path / ".profile"
        profile.write_text("before\n" + render_block({"A": "1"}, []) + "after\n")

        write_profile_block(profile, render_block({"A": "2"}, []))

        text = profile.read_text()
        assert text.count(BLOCK_BEGIN) == 1
        assert "export A=2" in text
        assert "export A=1" not in text
        assert text.startswith("before\n")
        assert text.endswith("after\n")

    def test_unchanged_block_is_not_rewritten(self, tmp_path):
        profile = tmp_path / ".profile"
        block = render_block({"A": "1"}, ["/x/bin"])
        write_profile_block(profile, block)

        assert not write_profile_block(profile, block)

    def test_dry_run(self, tmp_path):
        profile = tmp_path / ".profile"
        assert write_profile_block(profile, render_block({"A": "1"}, []), dry_run=True)
        assert not profile.exists()

    def test_read_block_absent(self, tmp_path):
        assert read_block(tmp_path / "nope") is None
        (tmp_path / "p").write_text("nothing here\n")
        assert read_block(tmp_path / "p") is None

    def test_replace_block_into_empty_text(self):
        block = render_block({"A": "1"}, [])
        assert replace_block("", block) == block


class TestApplyToEnviron:
    def test_sets_variables_and_prepends_path_once(self):
        environ = {"PATH": "/usr/bin:/bin"}

        changed = apply_to_environ(environ, {"JAVA_HOME": "/opt/jbr"}, ["/opt/tc/bin"])
        assert changed == ["JAVA_HOME", "PATH"]
        assert environ["PATH"] == "/opt/tc/bin:/usr/bin:/bin"

        assert apply_to_environ(environ, {"JAVA_HOME": "/opt/jbr"}, ["/opt/tc/bin"]) == []
        assert environ["PATH"].count("/opt/tc/bin") == 1

    def test_path_contains(self):
        environ = {"PATH": "/a/bin:/b/bin"}
        assert path_contains(environ, "/b/bin")
        assert not path_contains(environ, "/b")
