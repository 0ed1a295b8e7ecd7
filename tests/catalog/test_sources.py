"""Tests for the psutil and procfs process sources (OS calls mocked)."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import psutil
import pytest

from procdiag.catalog.psutil_source import (
    ProcfsProcessSource,
    PsutilProcessSource,
    default_source,
)


def _mock_process(name="java", cmdline=None, exe="/usr/bin/java", status="sleeping"):
    proc = MagicMock()
    proc.name.return_value = name
    proc.cmdline.return_value = cmdline if cmdline is not None else ["java", "-jar", "a.jar"]
    proc.exe.return_value = exe
    proc.status.return_value = status
    return proc


def test_inspect_reads_name_cmdline_exe():
    with patch("psutil.Process", return_value=_mock_process()):
        raw = PsutilProcessSource().inspect(42)
    assert raw.pid == 42
    assert raw.name == "java"
    assert raw.cmdline == ["java", "-jar", "a.jar"]
    assert raw.exe == "/usr/bin/java"


def test_inspect_tolerates_unreadable_exe():
    proc = _mock_process()
    proc.exe.side_effect = psutil.AccessDenied(42)
    with patch("psutil.Process", return_value=proc):
        raw = PsutilProcessSource().inspect(42)
    assert raw.exe == ""
    assert raw.name == "java"


def test_inspect_gone_maps_to_process_lookup_error():
    with patch("psutil.Process", side_effect=psutil.NoSuchProcess(42)):
        with pytest.raises(ProcessLookupError):
            PsutilProcessSource().inspect(42)


def test_inspect_zombie_maps_to_process_lookup_error():
    proc = _mock_process()
    proc.cmdline.side_effect = psutil.ZombieProcess(42)
    with patch("psutil.Process", return_value=proc):
        with pytest.raises(ProcessLookupError):
            PsutilProcessSource().inspect(42)


def test_inspect_denied_maps_to_permission_error():
    with patch("psutil.Process", side_effect=psutil.AccessDenied(42)):
        with pytest.raises(PermissionError):
            PsutilProcessSource().inspect(42)


def test_pids_failure_is_os_error():
    with patch("psutil.pids", side_effect=psutil.Error("boom")):
        with pytest.raises(OSError):
            PsutilProcessSource().pids()


def test_exists():
    source = PsutilProcessSource()
    with patch("psutil.Process", return_value=_mock_process()):
        assert source.exists(42) is True
    with patch("psutil.Process", return_value=_mock_process(status=psutil.STATUS_ZOMBIE)):
        assert source.exists(42) is False
    with patch("psutil.Process", side_effect=psutil.NoSuchProcess(42)):
        assert source.exists(42) is False
    with patch("psutil.Process", side_effect=psutil.AccessDenied(42)):
        assert source.exists(42) is True


def test_psutil_environ_is_nul_joined():
    proc = MagicMock()
    proc.environ.return_value = {"A": "1", "B": "x=y"}
    with patch("psutil.Process", return_value=proc):
        block = PsutilProcessSource().read_environ(42)
    assert block == b"A=1\0B=x=y"


def test_procfs_environ_is_verbatim(tmp_path):
    (tmp_path / "977").mkdir()
    (tmp_path / "977" / "environ").write_bytes(b"A=1\0B=2\0A=3\0")
    block = ProcfsProcessSource(proc_root=tmp_path).read_environ(977)
    assert block == b"A=1\0B=2\0A=3\0"


def test_procfs_environ_missing_pid(tmp_path):
    with pytest.raises(ProcessLookupError):
        ProcfsProcessSource(proc_root=tmp_path).read_environ(977)


def test_default_source_per_platform():
    with patch("sys.platform", "linux"):
        assert isinstance(default_source(), ProcfsProcessSource)
    with patch("sys.platform", "darwin"):
        source = default_source()
        assert isinstance(source, PsutilProcessSource)
        assert not isinstance(source, ProcfsProcessSource)


def test_procfs_source_runs_base_initialiser(tmp_path):
    with patch.object(PsutilProcessSource, "__init__", return_value=None) as base_init:
        source = ProcfsProcessSource(proc_root=tmp_path)
    base_init.assert_called_once()
    (tmp_path / "5").mkdir()
    (tmp_path / "5" / "environ").write_bytes(b"K=v\0")
    assert source.read_environ(5) == b"K=v\0"
