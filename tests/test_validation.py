import io

import validation

from conftest import write_csv


class TestCheckSources:

    def test_valid_sources(self, kickoff_dir):
        log = io.StringIO()

        failed = validation.check_sources("kickoff", kickoff_dir, True, log)

        assert failed == []
        lines = log.getvalue().splitlines()
        assert len(lines) == 2
        assert all(line.startswith("OK[") for line in lines)

    def test_quiet_without_confirm(self, kickoff_dir):
        log = io.StringIO()

        validation.check_sources("kickoff", kickoff_dir, False, log)

        assert log.getvalue() == ""

    def test_reordered_columns(self, kickoff_dir):
        write_csv(kickoff_dir / "KickOff" / "results_gcc.csv", ["threads", "name", "n", "run", "duration"], [])
        log = io.StringIO()

        failed = validation.check_sources("kickoff", kickoff_dir, False, log)

        assert failed == ["gcc"]
        assert "columns out of order" in log.getvalue()

    def test_unexpected_columns(self, kickoff_dir):
        write_csv(kickoff_dir / "KickOff" / "results_clang.csv", ["name", "threads", "n", "duration"], [])
        log = io.StringIO()

        failed = validation.check_sources("kickoff", kickoff_dir, False, log)

        assert failed == ["clang"]
        assert "missing ['run']" in log.getvalue()

    def test_missing_source(self, kickoff_dir):
        (kickoff_dir / "KickOff" / "results_clang.csv").unlink()
        log = io.StringIO()

        failed = validation.check_sources("kickoff", kickoff_dir, False, log)

        assert failed == ["clang"]
        assert log.getvalue().startswith("ERROR[")
