import numpy as np
import pytest

from qdsim.errors import NotFoundError
from qdsim.store.h5store import exists, group, open_store, read, write_if_absent


def test_write_if_absent_keeps_first_value(tmp_path):
    target = tmp_path / "store.h5"
    with open_store(target, "a") as handle:
        g = group(handle, ["a", "b"])
        assert write_if_absent(g, "x", np.arange(3))
        assert not write_if_absent(g, "x", np.zeros(5))

    with open_store(target, "r") as handle:
        np.testing.assert_array_equal(read(handle["a/b"], "x"), np.arange(3))


def test_scalars_and_strings_read_back_as_python_values(tmp_path):
    target = tmp_path / "store.h5"
    with open_store(target, "w") as handle:
        write_if_absent(handle, "beta", 2.5)
        write_if_absent(handle, "label", "fs")

    with open_store(target, "r") as handle:
        assert read(handle, "beta") == 2.5
        assert isinstance(read(handle, "beta"), float)
        assert read(handle, "label") == "fs"


def test_open_missing_file_readonly_raises(tmp_path):
    with pytest.raises(NotFoundError):
        with open_store(tmp_path / "missing.h5", "r"):
            pass
    with pytest.raises(NotFoundError):
        with open_store(tmp_path / "missing.h5", "r+"):
            pass
    assert not (tmp_path / "missing.h5").exists()


def test_append_mode_creates_parent_directories(tmp_path):
    target = tmp_path / "nested" / "dir" / "store.h5"
    with open_store(target, "a") as handle:
        group(handle, "g")
    assert target.is_file()


def test_group_without_create_does_not_touch_the_file(tmp_path):
    target = tmp_path / "store.h5"
    with open_store(target, "a") as handle:
        group(handle, "present")
        with pytest.raises(NotFoundError):
            group(handle, ["present", "absent"], create=False)
        assert not exists(handle["present"], "absent")


def test_read_only_file_never_creates_groups(tmp_path):
    target = tmp_path / "store.h5"
    with open_store(target, "w"):
        pass
    with open_store(target, "r") as handle:
        with pytest.raises(NotFoundError):
            group(handle, "g")


def test_read_missing_dataset_raises(tmp_path):
    with open_store(tmp_path / "store.h5", "w") as handle:
        with pytest.raises(NotFoundError):
            read(handle, "nope")


def test_invalid_mode_rejected(tmp_path):
    with pytest.raises(ValueError):
        with open_store(tmp_path / "store.h5", "x"):
            pass
