"""Tests for the post-process phase: executable bits and .properties files."""

from __future__ import annotations

import os
import stat

import pytest

from toolchain_installer.phases.phase_60_post_process import PostProcessPhase, merge_properties


class TestMergeProperties:
    def test_sets_existing_and_appends_missing(self):
        text = "a=1\n# comment\nb = 2\nb=3\n"
        assert merge_properties(text, {"b": "9", "c": "x"}) == "a=1\n# comment\nb=9\nc=x\n"

    def test_empty_document(self):
        assert merge_properties("", {"org.gradle.offline": "true"}) == "org.gradle.offline=true\n"

    def test_colon_separator_and_current_value(self):
        text = "org.gradle.offline: true\n"
        merged = merge_properties(text, {"org.gradle.offline": "true"})
        assert merged == "org.gradle.offline=true\n"
        assert merge_properties(merged, {"org.gradle.offline": "true"}) == merged


@pytest.mark.skipif(os.name == "nt", reason="POSIX permission bits")
class TestPostProcessPhase:
    def test_marks_matching_files_executable_and_converges(self, make_ctx, tmp_path, home):
        root = tmp_path / "root"
        (root / "bin").mkdir(parents=True)
        tool = root / "bin" / "tool"
        tool.write_text("#!/bin/sh\n")
        tool.chmod(0o644)
        data = root / "lib.txt"
        data.write_text("data")
        data.chmod(0o644)

        ctx = make_ctx()
        phase = PostProcessPhase()
        assert not phase.is_satisfied(ctx)

        phase.run(ctx)

        assert stat.S_IMODE(tool.stat().st_mode) == 0o755
        assert stat.S_IMODE(data.stat().st_mode) == 0o644
        assert (home / ".gradle" / "gradle.properties").read_text() == "org.gradle.offline=true\n"
        assert phase.is_satisfied(ctx)

    def test_properties_file_keeps_user_lines(self, make_ctx, home):
        props = home / ".gradle" / "gradle.properties"
        props.parent.mkdir(parents=True)
        props.write_text("org.gradle.jvmargs=-Xmx2g\norg.gradle.offline=false\n")

        PostProcessPhase().run(make_ctx())

        assert props.read_text() == "org.gradle.jvmargs=-Xmx2g\norg.gradle.offline=true\n"
