"""
Tests for mipsat.utils.solver_log.
"""
import logging

from mipsat.utils import solver_log
from mipsat.utils.solver_log import SolverLogger, format_response_stats


class TestSolverLogger:
    def test_disabled_logger_is_silent(self):
        lines = []
        logger = SolverLogger(enabled=False, callbacks=[lines.append])
        logger.log("hidden")
        assert lines == []

    def test_formats_arguments(self):
        lines = []
        logger = SolverLogger(enabled=True, callbacks=[lines.append])
        logger.log("%d rows, %s", 3, "done")
        assert lines == ["3 rows, done"]

    def test_percent_without_args_is_literal(self):
        lines = []
        SolverLogger(enabled=True, callbacks=[lines.append]).log("100% done")
        assert lines == ["100% done"]

    def test_stdout_echo(self, capsys):
        SolverLogger(enabled=True, log_to_stdout=True).log("to stdout")
        assert capsys.readouterr().out == "to stdout\n"

    def test_lines_reach_python_logging(self, caplog):
        with caplog.at_level(logging.INFO, logger="mipsat"):
            SolverLogger(enabled=True).log("search line")
        assert "search line" in caplog.text


class TestFormatResponseStats:
    def test_missing_values_are_na(self):
        text = format_response_stats("INFEASIBLE")
        assert text.splitlines()[0] == "CpSolverResponse summary:"
        assert "status: INFEASIBLE" in text
        assert "objective: NA" in text

    def test_values(self):
        text = format_response_stats("OPTIMAL", objective=12.0, best_bound=12.0, wall_time=0.5)
        assert "objective: 12" in text
        assert "walltime: 0.5" in text


class TestSetupLogging:
    def test_single_handler_and_idempotent(self, monkeypatch):
        monkeypatch.setattr(solver_log, "_ROOT_LOGGER_CONFIGURED", False)
        root = logging.getLogger("mipsat")
        saved_handlers, saved_level = list(root.handlers), root.level
        try:
            first = logging.NullHandler()
            solver_log.setup_logging(level="DEBUG", handler=first)
            solver_log.setup_logging(level="INFO", handler=logging.NullHandler())
            assert root.handlers == [first]
            assert root.level == logging.DEBUG
            assert root.propagate
        finally:
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)
