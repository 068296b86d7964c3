"""Tests for run logging."""

import re

from bootstrap_kit.logger import RunLogger

from conftest import make_ctx


class TestRunLogger:
    """Tests for RunLogger."""

    def test_debug_hidden_unless_verbose(self, project, capsys):
        RunLogger(make_ctx(project)).debug("hidden detail")
        RunLogger(make_ctx(project, verbose=True)).debug("shown detail")

        out = capsys.readouterr().out
        assert "hidden detail" not in out
        assert "[DEBUG] shown detail" in out

    def test_level_prefixes(self, project, capsys):
        log = RunLogger(make_ctx(project))
        log.step("Installing drizzle-kit")
        log.skip("Dependency next")
        log.success("Installed: postgres")
        log.dry("pnpm add drizzle-orm")

        out = capsys.readouterr().out
        assert "[STEP] >>> Installing drizzle-kit" in out
        assert "[SKIP] Dependency next (already exists)" in out
        assert "[OK] ✓ Installed: postgres" in out
        assert "[DRY RUN] Would execute: pnpm add drizzle-orm" in out

    def test_errors_go_to_stderr(self, project, capsys):
        RunLogger(make_ctx(project)).error("boom")

        captured = capsys.readouterr()
        assert "boom" in captured.err
        assert "boom" not in captured.out

    def test_file_lines_are_timestamped_without_color(self, project, tmp_path):
        log_file = tmp_path / "logs" / "run.log"
        log = RunLogger(make_ctx(project, log_file=log_file))
        log.init()
        log.step("Creating drizzle.config.ts")
        log.close()

        lines = log_file.read_text(encoding="utf-8").splitlines()
        assert re.fullmatch(r"\[\d{4}-\d\d-\d\d \d\d:\d\d:\d\d\] \[INFO\] === Logging initialized: .* ===", lines[0])
        assert any(line.endswith("[STEP] >>> Creating drizzle.config.ts") for line in lines)
        assert not any("\x1b[" in line for line in lines)

    def test_counts_and_summary(self, project, capsys):
        log = RunLogger(make_ctx(project))
        log.success("a")
        log.success("b")
        log.skip("c")
        assert log.failed is False

        log.error("d")
        assert log.failed is True

        log.summary()
        captured = capsys.readouterr()
        assert "Summary: 2 ok, 1 skipped, 0 warnings, 1 errors" in captured.err

    def test_no_file_without_log_destination(self, project):
        before = sorted(p.name for p in project.iterdir())

        log = RunLogger(make_ctx(project))
        log.init()
        log.close()

        assert sorted(p.name for p in project.iterdir()) == before
