import logging

import h5py
import pytest

from qdsim.cli import build_parser, main
from qdsim.log import LOGGER_NAME, get_logger


@pytest.fixture(autouse=True)
def _reset_logger():
    yield
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)


def test_parser_requires_a_command():
    with pytest.raises(SystemExit):
        build_parser().parse_args([])


def test_run_then_replay_then_plot(system_file, run_file, propagate_file, tmp_path):
    assert main(["run", str(system_file), str(run_file())]) == 0
    prop = propagate_file({"nsteps": 12, "rho0": [[1, 0], [0, 0]], "outgroup": "up"})
    assert main(["-v", "propagate_using_tmats", str(system_file), str(prop)]) == 0
    assert main(["propagate_using_gqme", str(system_file), str(propagate_file(
        {"nsteps": 12, "rho0": [[1, 0], [0, 0]], "outgroup": "gqme"}, name="gqme.yaml"
    ))]) == 0

    with h5py.File(tmp_path / "out.h5", "r") as fh:
        assert fh["tls/dynamics/Bare/dt=0.5/up/rho"].shape == (13, 2, 2)
        assert fh["tls/dynamics/Bare/dt=0.5/gqme/rho"].shape == (13, 2, 2)

    figure = tmp_path / "up.png"
    assert main(["plot", str(tmp_path / "out.h5"), "tls/dynamics/Bare/dt=0.5/up", "--save", str(figure)]) == 0
    assert figure.is_file()


def test_errors_exit_with_status_one(system_file, propagate_file, capsys):
    prop = propagate_file({"rho0": [[1, 0], [0, 0]], "outgroup": "up"})
    assert main(["propagate_using_tmats", str(system_file), str(prop)]) == 1
    assert "NotFoundError" in capsys.readouterr().err


def test_missing_config_file_is_reported(tmp_path, system_file):
    assert main(["run", str(system_file), str(tmp_path / "absent.yaml")]) == 1


def test_get_logger_does_not_stack_handlers():
    get_logger(0)
    logger = get_logger(1)
    owned = [h for h in logger.handlers if getattr(h, "_qdsim_owned", False)]
    assert len(owned) == 1
    assert logger.level == logging.DEBUG
    assert not logger.propagate
