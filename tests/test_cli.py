"""Tests for the command line interface."""

from pycrtdesign.cli import main

ARGS = [
    "--beta1", "0.1", "--beta2", "0.1",
    "--var-y1", "0.23", "--var-y2", "0.25",
    "--rho01", "0.025", "--rho02", "0.025",
    "--rho1", "0.01", "--rho2", "0.05",
]


class TestCli:
    """End-to-end runs of the console script."""

    def test_power(self, capsys):
        assert main(["--output", "power", "--K", "15", "--m", "300", *ARGS]) == 0
        out = capsys.readouterr().out
        assert "2. Combined Outcomes" in out
        assert "Power" in out

    def test_cluster_size(self, capsys):
        assert main(["--output", "m", "--power", "0.8", "--K", "15", *ARGS]) == 0
        assert "5. Conjunctive IU Test" in capsys.readouterr().out

    def test_validation_error_exit_code(self, capsys):
        code = main(["--output", "power", "--K", "14.5", "--m", "300", *ARGS])
        assert code == 2
        assert "positive whole number" in capsys.readouterr().err
