import pytest
from pathlib import Path
from dskclean.cli import build_parser, config_from_args, main
from dskclean.conf import CleanMode
from dskclean.errors import RuntimeUnreachable
from dskclean.records import Inventory


def connector(accessor):
    def _connect(config):
        return accessor

    return _connect


def unreachable(config):
    raise RuntimeUnreachable(
        f"Cannot find {config.socket_path}, this tool cannot be run from a container."
    )


@pytest.fixture
def log_file(tmp_path):
    return tmp_path / "clean.log"


class TestParser:
    def test_defaults(self):
        config = config_from_args(build_parser().parse_args([]))
        assert config.mode is CleanMode.CONSERVATIVE
        assert config.dry_run is False
        assert config.quiet is False
        assert config.log_file == Path("clean.log")

    def test_flags(self, log_file):
        args = build_parser().parse_args(
            ["-D", "-c", "-q", "-v", "--require-volumes", "--log-file", str(log_file)]
        )
        config = config_from_args(args)
        assert config.mode is CleanMode.DEEP
        assert config.dry_run is True
        assert config.quiet is True
        assert config.verbose is True
        assert config.require_volume_support is True
        assert config.log_file == log_file

    def test_help_exits_non_zero(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["-h"])
        assert exc_info.value.code == 1
        assert "--deep-clean" in capsys.readouterr().out

    def test_unknown_flag_exits_one(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["-x"])
        assert exc_info.value.code == 1
        assert "unrecognized arguments" in capsys.readouterr().err


class TestMain:
    def test_nothing_to_clean(self, fake_accessor, log_file):
        code = main(["--log-file", str(log_file)], connect=connector(fake_accessor()))
        assert code == 0
        text = log_file.read_text()
        assert "docker disk clean initiated by" in text
        assert "containers: 0 removed, 0 skipped, 0 failed" in text

    def test_unreachable_runtime(self, log_file):
        code = main(["--log-file", str(log_file)], connect=unreachable)
        assert code == 1
        text = log_file.read_text()
        assert "Cannot find" in text
        assert "containers:" not in text

    def test_log_is_truncated(self, fake_accessor, log_file):
        log_file.write_text("output of an earlier run\n")
        main(["--log-file", str(log_file)], connect=connector(fake_accessor()))
        assert "earlier run" not in log_file.read_text()

    def test_log_lines_are_timestamped(self, fake_accessor, log_file):
        main(["--log-file", str(log_file)], connect=connector(fake_accessor()))
        first = log_file.read_text().splitlines()[0]
        assert first[:4].isdigit()
        assert " - INFO - " in first

    def test_quiet_prints_summary_only(
        self, fake_accessor, scenario_inventory, log_file, capsys
    ):
        accessor = fake_accessor(scenario_inventory)
        code = main(["-q", "--log-file", str(log_file)], connect=connector(accessor))
        assert code == 0
        out = capsys.readouterr().out
        assert "Removing" not in out
        assert "containers: 1 removed, 0 skipped, 0 failed" in out
        assert "Removing container" in log_file.read_text()

    def test_quiet_fatal_error_goes_to_stderr(self, log_file, capsys):
        assert main(["-q", "--log-file", str(log_file)], connect=unreachable) == 1
        assert "Cannot find" in capsys.readouterr().err

    def test_check_only_deep_clean(self, fake_accessor, scenario_inventory, log_file, capsys):
        accessor = fake_accessor(scenario_inventory)
        code = main(["-c", "-D", "--log-file", str(log_file)], connect=connector(accessor))
        assert code == 0
        assert accessor.calls == []
        out = capsys.readouterr().out
        assert "images: 2 would be removed" in out
        assert "[Dry run] Would remove image" in log_file.read_text()

    def test_degraded_volume_cleanup_succeeds(self, fake_accessor, log_file):
        accessor = fake_accessor(Inventory(), api_version="1.20", supported=False)
        code = main(["-D", "--log-file", str(log_file)], connect=connector(accessor))
        assert code == 0
        assert "skipping volume cleanup" in log_file.read_text()

    def test_degraded_volume_cleanup_required(self, fake_accessor, log_file):
        accessor = fake_accessor(Inventory(), api_version="1.20", supported=False)
        code = main(
            ["-D", "--require-volumes", "--log-file", str(log_file)],
            connect=connector(accessor),
        )
        assert code == 1
