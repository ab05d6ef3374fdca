# SPDX-License-Identifier: LGPL-3.0-or-later
"""
End-to-end pipeline tests.

Real decompression on real files; qemu-img and qm are replaced by a fake
that records the commands and creates the qcow2 the way qemu-img would.
"""
from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import patch

import pytest

from fakes.fake_images import flip_byte, payload, write_gz, write_xz, write_zip
from fakes.fake_logger import FakeLogger
from img2kvm.__main__ import run as cli_run
from img2kvm.cli.argument_parser import parse_args_with_config
from img2kvm.converters.formats import FormatTag
from img2kvm.core.exceptions import DecodeError, ExternalProcessError, FileIoError, UnsupportedFormat
from img2kvm.core.utils import U
from img2kvm.orchestrator import Orchestrator


class FakeTools:
    def __init__(self, fail=None):
        self.fail = fail
        self.calls = []

    def __call__(self, logger, cmd, *, tool):
        self.calls.append((tool, [str(x) for x in cmd]))
        if tool == self.fail:
            raise ExternalProcessError(
                msg=f"{tool} failed (exit 1)",
                cmd=[str(x) for x in cmd],
                returncode=1,
                output=f"{tool}: simulated failure\n",
            )
        if tool == "qemu-img":
            Path(cmd[-1]).write_bytes(b"QFI\xfb")
        return ""

    @property
    def tools(self):
        return [t for t, _ in self.calls]


@pytest.fixture
def env(tmp_path):
    src_dir = tmp_path / "images"
    work = tmp_path / "work"
    src_dir.mkdir()
    work.mkdir()
    return src_dir, work.resolve()


def _orchestrator(image, work, *extra):
    log = FakeLogger()
    argv = ["-n", str(image), "-i", "100", "--workdir", str(work), "--no-progress", *extra]
    args, _conf, _ = parse_args_with_config(argv, logger=log)
    return Orchestrator(log, args), log


@pytest.mark.integration
class TestPipeline:
    def test_gzip_image_end_to_end(self, env):
        src_dir, work = env
        data = payload()
        src = write_gz(src_dir / "disk.img.gz", data)
        tools = FakeTools()
        orch, log = _orchestrator(src, work)

        with patch.object(U, "run_external", new=tools):
            result = orch.run()

        image = work / "disk.img"
        disk = work / "img2kvm_temp.qcow2"
        assert result.tag is FormatTag.GZIP
        assert result.image == image
        assert tools.calls == [
            ("qemu-img", ["qemu-img", "convert", "-f", "raw", "-O", "qcow2", str(image), str(disk)]),
            ("qm importdisk", ["qm", "importdisk", "100", str(disk), "local-lvm"]),
        ]
        assert list(work.iterdir()) == []
        assert src.exists()

        steps = [m for lv, m in log.records if m.startswith("--- ")]
        assert steps == ["--- convert img to qcow2...", "--- importdisk...", "--- remove temp file...", "--- success"]

    def test_raw_image_is_used_in_place(self, env):
        src_dir, work = env
        src = src_dir / "disk.img"
        src.write_bytes(b"\0" * 4096)
        tools = FakeTools()
        orch, _ = _orchestrator(src, work, "-s", "ceph")

        with patch.object(U, "run_external", new=tools):
            result = orch.run()

        assert not result.decompressed
        assert tools.calls[0][1][-2] == str(src.resolve())
        assert tools.calls[1][1][-1] == "ceph"
        assert src.exists()
        assert list(work.iterdir()) == []

    def test_zip_uses_first_entry(self, env):
        src_dir, work = env
        src = write_zip(src_dir / "archive.zip", [("a.bin", bytes([1, 2, 3])), ("b.bin", b"zz")])
        tools = FakeTools()
        orch, _ = _orchestrator(src, work, "--keep-temp")

        with patch.object(U, "run_external", new=tools):
            orch.run()

        assert (work / "archive").read_bytes() == bytes([1, 2, 3])
        assert tools.calls[0][1][-2] == str(work / "archive")
        assert (work / "img2kvm_temp.qcow2").exists()

    def test_unsupported_extension_runs_nothing(self, env):
        src_dir, work = env
        src = src_dir / "disk.vmdk"
        src.write_bytes(b"KDMV")
        tools = FakeTools()
        orch, _ = _orchestrator(src, work)

        with patch.object(U, "run_external", new=tools), pytest.raises(UnsupportedFormat) as ei:
            orch.run()

        assert str(ei.value) == "classify: Unsupported file extension: vmdk"
        assert tools.calls == []
        assert list(work.iterdir()) == []

    def test_missing_source(self, env):
        src_dir, work = env
        orch, _ = _orchestrator(src_dir / "nope.img.gz", work)

        with pytest.raises(FileIoError) as ei:
            orch.run()
        assert ei.value.phase == "resolve"
        assert "Failed to canonicalize image path" in str(ei.value)

    def test_corrupt_xz_stops_before_external_tools(self, env):
        src_dir, work = env
        src = write_xz(src_dir / "disk.img.xz", payload())
        flip_byte(src, -12)
        tools = FakeTools()
        orch, _ = _orchestrator(src, work)

        with patch.object(U, "run_external", new=tools), pytest.raises(DecodeError) as ei:
            orch.run()

        assert str(ei.value).startswith("decompress: ")
        assert tools.calls == []
        assert list(work.iterdir()) == []

    def test_qemu_failure_skips_import(self, env):
        src_dir, work = env
        src = write_gz(src_dir / "disk.img.gz", b"data")
        tools = FakeTools(fail="qemu-img")
        orch, _ = _orchestrator(src, work)

        with patch.object(U, "run_external", new=tools), pytest.raises(ExternalProcessError) as ei:
            orch.run()

        assert tools.tools == ["qemu-img"]
        assert ei.value.phase == "convert"
        assert "simulated failure" in str(ei.value)
        assert (work / "disk.img").exists()

    def test_import_failure_leaves_artifacts(self, env):
        src_dir, work = env
        src = write_gz(src_dir / "disk.img.gz", b"data")
        tools = FakeTools(fail="qm importdisk")
        orch, _ = _orchestrator(src, work)

        with patch.object(U, "run_external", new=tools), pytest.raises(ExternalProcessError) as ei:
            orch.run()

        assert ei.value.phase == "importdisk"
        assert (work / "disk.img").exists()
        assert (work / "img2kvm_temp.qcow2").exists()

    def test_cleanup_failure_is_reported(self, env):
        src_dir, work = env
        src = src_dir / "disk.img"
        src.write_bytes(b"x")
        orch, _ = _orchestrator(src, work)

        # qemu-img "succeeds" without producing the qcow2
        with patch.object(U, "run_external", return_value=""), pytest.raises(FileIoError) as ei:
            orch.run()
        assert ei.value.phase == "cleanup"
        assert "Failed to remove temporary qcow2 file" in str(ei.value)

    def test_dry_run_touches_nothing(self, env):
        src_dir, work = env
        src = write_gz(src_dir / "disk.img.gz", b"data")
        tools = FakeTools()
        orch, log = _orchestrator(src, work, "--dry-run")

        with patch.object(U, "run_external", new=tools):
            result = orch.run()

        assert result.dry_run
        assert result.image == work / "disk.img"
        assert tools.calls == []
        assert list(work.iterdir()) == []
        info = log.text("info")
        assert "would run: qemu-img convert -f raw -O qcow2" in info
        assert "would run: qm importdisk 100" in info


@pytest.mark.integration
class TestExitCodes:
    def _argv(self, image, work):
        return ["-n", str(image), "-i", "100", "--workdir", str(work), "--no-progress", "-q"]

    def test_success(self, env):
        src_dir, work = env
        src = write_gz(src_dir / "disk.img.gz", b"data")
        with patch.object(U, "run_external", new=FakeTools()):
            assert cli_run(self._argv(src, work)) == 0

    def test_unsupported(self, env):
        src_dir, work = env
        src = src_dir / "disk.qcow2"
        src.write_bytes(b"QFI")
        assert cli_run(self._argv(src, work)) == 2

    def test_missing_file(self, env):
        src_dir, work = env
        assert cli_run(self._argv(src_dir / "missing.img", work)) == 3

    def test_decode_error(self, env):
        src_dir, work = env
        src = src_dir / "disk.img.gz"
        src.write_bytes(b"definitely not gzip")
        assert cli_run(self._argv(src, work)) == 4

    def test_external_failure(self, env):
        src_dir, work = env
        src = src_dir / "disk.iso"
        src.write_bytes(b"CD001")
        with patch.object(U, "run_external", new=FakeTools(fail="qemu-img")):
            assert cli_run(self._argv(src, work)) == 6

    def test_unexpected_exception(self, env):
        src_dir, work = env
        src = src_dir / "disk.img"
        src.write_bytes(b"x")
        with patch.object(Orchestrator, "run", side_effect=RuntimeError("kaboom")):
            assert cli_run(self._argv(src, work)) == 1

    def test_keyboard_interrupt(self, env):
        src_dir, work = env
        src = src_dir / "disk.img"
        src.write_bytes(b"x")
        with patch.object(Orchestrator, "run", side_effect=KeyboardInterrupt):
            assert cli_run(self._argv(src, work)) == 130

    def test_missing_workdir(self, env):
        src_dir, work = env
        src = src_dir / "disk.img"
        src.write_bytes(b"x")
        assert cli_run(self._argv(src, work / "nope")) == 5

    def test_json_logs_carry_structured_error(self, env, tmp_path):
        src_dir, work = env
        log_file = tmp_path / "run.ndjson"
        argv = self._argv(src_dir / "missing.img", work) + ["--json-logs", "--log-file", str(log_file)]

        assert cli_run(argv) == 3

        records = [json.loads(ln) for ln in log_file.read_text(encoding="utf-8").splitlines()]
        errors = [r for r in records if r["level"] == "ERROR"]
        assert len(errors) == 1
        err = errors[0]["error"]
        assert err["type"] == "FileIoError"
        assert err["code"] == 3
        assert err["context"]["phase"] == "resolve"
        assert errors[0]["msg"].startswith("Error: resolve: Failed to canonicalize image path")
