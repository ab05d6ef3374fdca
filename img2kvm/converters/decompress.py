# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# img2kvm/converters/decompress.py
from __future__ import annotations

import bz2
import contextlib
import logging
import lzma
import zipfile
import zlib
from pathlib import Path
from typing import BinaryIO, Callable, Dict, Iterator, Optional

from rich.progress import (
    BarColumn,
    DownloadColumn,
    Progress,
    TextColumn,
    TimeElapsedColumn,
    TimeRemainingColumn,
    TransferSpeedColumn,
)

from ..core.context import RunContext
from ..core.exceptions import DecodeError, FileIoError
from ..core.file_ops import atomic_write
from ..core.logger import is_tty
from ..core.utils import U
from .formats import FormatTag
from .naming import output_path

# Upper bound on bytes produced per decoder call; keeps highly compressible
# images (long runs of zeros) from ballooning a single chunk in memory.
_MAX_OUT = 4 * 1024 * 1024

# Exceptions a decoder raises on bad input (bz2 reports OSError, zip a mix).
_DECODE_ERRORS = (
    lzma.LZMAError,
    zlib.error,
    EOFError,
    ValueError,
    OSError,
    zipfile.BadZipFile,
    NotImplementedError,
    RuntimeError,
)


class _GzipDecompressor:
    """
    zlib gzip-member decoder exposing the bz2/lzma decompressor interface
    (decompress(data, max_length), eof, needs_input, unused_data).
    The member trailer (CRC32 + ISIZE) is verified by zlib.
    """

    def __init__(self) -> None:
        self._z = zlib.decompressobj(16 + zlib.MAX_WBITS)

    @property
    def eof(self) -> bool:
        return self._z.eof

    @property
    def needs_input(self) -> bool:
        return not self._z.unconsumed_tail

    @property
    def unused_data(self) -> bytes:
        return self._z.unused_data

    def decompress(self, data: bytes, max_length: int = -1) -> bytes:
        buf = self._z.unconsumed_tail + data
        return self._z.decompress(buf, max_length if max_length > 0 else 0)


class _Codec:
    def __init__(
        self,
        label: str,
        make: Callable[[RunContext], object],
        *,
        multistream: bool,
        pad_align: int = 1,
    ) -> None:
        self.label = label
        self.make = make
        self.multistream = multistream
        # NUL padding after a stream must be a multiple of this many bytes.
        self.pad_align = pad_align


_CODECS: Dict[FormatTag, _Codec] = {
    FormatTag.BZIP2: _Codec("bz2", lambda ctx: bz2.BZ2Decompressor(), multistream=True),
    FormatTag.GZIP: _Codec("gz", lambda ctx: _GzipDecompressor(), multistream=True),
    FormatTag.LZMA: _Codec(
        "lzma",
        lambda ctx: lzma.LZMADecompressor(format=lzma.FORMAT_ALONE, memlimit=ctx.lzma_memlimit),
        multistream=False,
    ),
    FormatTag.XZ: _Codec(
        "xz",
        # liblzma verifies the stream's integrity check (CRC32/CRC64/SHA-256).
        lambda ctx: lzma.LZMADecompressor(format=lzma.FORMAT_XZ),
        multistream=True,
        pad_align=4,
    ),
}


def _read(f: BinaryIO, n: int, src: Path) -> bytes:
    try:
        return f.read(n)
    except OSError as e:
        raise FileIoError(msg=f"Failed to read {src}: {e}", cause=e, context={"path": str(src)}) from e


def _write(out: BinaryIO, data: bytes, dst: Path) -> None:
    try:
        out.write(data)
    except OSError as e:
        raise FileIoError(msg=f"Failed to write decompressed data to {dst}: {e}", cause=e, context={"path": str(dst)}) from e


def _decode_error(label: str, src: Path, e: BaseException) -> DecodeError:
    return DecodeError(
        msg=f"Failed to decompress {label} file {src}: {e}",
        cause=e,
        context={"path": str(src), "format": label},
    )


def _new_decoder(codec: _Codec, ctx: RunContext, src: Path):
    try:
        return codec.make(ctx)
    except (lzma.LZMAError, ValueError, TypeError) as e:
        raise DecodeError(
            msg=f"Failed to create {codec.label} decoder for {src}: {e}",
            cause=e,
            context={"path": str(src), "format": codec.label},
        ) from e


def _check_padding(codec: _Codec, padding: int, src: Path) -> None:
    if padding % codec.pad_align:
        raise DecodeError(
            msg=f"Invalid {codec.label} stream padding in {src}: {padding} NUL bytes, not a multiple of {codec.pad_align}",
            context={"path": str(src), "format": codec.label},
        )


def _decode_stream(
    f: BinaryIO,
    codec: _Codec,
    ctx: RunContext,
    src: Path,
    advance: Callable[[int], None],
) -> Iterator[bytes]:
    """
    Yield decoded chunks of `f` until the compressed input is exhausted.

    Multi-stream codecs restart the decoder on data that follows a finished
    stream. NUL padding between streams is skipped; xz requires it in
    4-byte units. Input that ends before the final end-of-stream marker
    is a DecodeError.
    """
    dec = _new_decoder(codec, ctx, src)
    pending = b""
    padding = 0

    try:
        while True:
            if not pending:
                pending = _read(f, ctx.chunk_size, src)
                if not pending:
                    break
                advance(len(pending))

            if dec.eof:
                stripped = pending.lstrip(b"\0")
                padding += len(pending) - len(stripped)
                pending = stripped
                if not pending:
                    continue
                _check_padding(codec, padding, src)
                padding = 0
                if not codec.multistream:
                    raise DecodeError(
                        msg=f"Trailing data after end of {codec.label} stream in {src}",
                        context={"path": str(src), "format": codec.label},
                    )
                dec = _new_decoder(codec, ctx, src)

            out = dec.decompress(pending, max_length=_MAX_OUT)
            pending = b""
            if out:
                yield out
            while not dec.eof and not dec.needs_input:
                out = dec.decompress(b"", max_length=_MAX_OUT)
                if out:
                    yield out
            if dec.eof:
                pending = dec.unused_data

        while not dec.eof:
            out = dec.decompress(b"", max_length=_MAX_OUT)
            if not out:
                break
            yield out
    except (DecodeError, FileIoError):
        raise
    except _DECODE_ERRORS as e:
        raise _decode_error(codec.label, src, e) from e

    if not dec.eof:
        raise DecodeError(
            msg=f"Failed to decompress {codec.label} file {src}: compressed data ended before the end-of-stream marker",
            context={"path": str(src), "format": codec.label},
        )
    _check_padding(codec, padding, src)


@contextlib.contextmanager
def _progress(ctx: RunContext, description: str, total: Optional[int]) -> Iterator[Callable[[int], None]]:
    """Yield an `advance(n)` callback; draws a rich bar only on an interactive stderr."""
    if not ctx.progress or not is_tty():
        yield lambda n: None
        return

    with Progress(
        TextColumn("{task.description}"),
        BarColumn(),
        DownloadColumn(),
        TransferSpeedColumn(),
        TextColumn("{task.percentage:>3.0f}%"),
        TimeElapsedColumn(),
        TimeRemainingColumn(),
    ) as progress:
        task = progress.add_task(description, total=total)
        yield lambda n: progress.update(task, advance=n)


class Decompress:
    """
    One strategy per compressed FormatTag. Every strategy:
      - writes <workdir>/<stem of src> and returns that path
      - streams through a temp file and renames it only after a clean
        end-of-stream, so a failed run leaves no output file
      - raises FileIoError / DecodeError / PathError on failure
    """

    @staticmethod
    def run(logger: logging.Logger, src: Path, tag: FormatTag, ctx: RunContext) -> Path:
        if tag is FormatTag.ZIP:
            return Decompress.zip(logger, src, ctx)
        codec = _CODECS.get(tag)
        if codec is None:
            raise ValueError(f"{tag} is not a compressed format")
        return Decompress._stream(logger, src, codec, ctx)

    @staticmethod
    def bzip2(logger: logging.Logger, src: Path, ctx: RunContext) -> Path:
        return Decompress._stream(logger, src, _CODECS[FormatTag.BZIP2], ctx)

    @staticmethod
    def gzip(logger: logging.Logger, src: Path, ctx: RunContext) -> Path:
        return Decompress._stream(logger, src, _CODECS[FormatTag.GZIP], ctx)

    @staticmethod
    def lzma(logger: logging.Logger, src: Path, ctx: RunContext) -> Path:
        return Decompress._stream(logger, src, _CODECS[FormatTag.LZMA], ctx)

    @staticmethod
    def xz(logger: logging.Logger, src: Path, ctx: RunContext) -> Path:
        return Decompress._stream(logger, src, _CODECS[FormatTag.XZ], ctx)

    @staticmethod
    def zip(logger: logging.Logger, src: Path, ctx: RunContext) -> Path:
        """Extract archive entry #0 only (no search by name or size)."""
        logger.info("decompress zip file %s...", src)
        dst = Decompress._prepare_output(src, ctx)

        try:
            zf = zipfile.ZipFile(src)
        except OSError as e:
            raise FileIoError(msg=f"Failed to open zip file: {src}: {e}", cause=e, context={"path": str(src)}) from e
        except (zipfile.BadZipFile, zipfile.LargeZipFile, ValueError) as e:
            raise _decode_error("zip", src, e) from e

        with zf:
            entries = zf.infolist()
            if not entries:
                raise DecodeError(msg=f"ZIP file is empty: {src}", context={"path": str(src), "format": "zip"})

            first = entries[0]
            if len(entries) > 1:
                logger.debug("zip has %d entries; using the first: %s", len(entries), first.filename)

            try:
                entry = zf.open(first)
            except _DECODE_ERRORS as e:
                raise DecodeError(
                    msg=f"Failed to access first file in ZIP archive {src}: {e}",
                    cause=e,
                    context={"path": str(src), "entry": first.filename},
                ) from e

            with entry, _progress(ctx, f"Extracting {first.filename}", first.file_size) as advance:
                Decompress._materialize(dst, Decompress._iter_entry(entry, src, ctx), on_write=advance)

        logger.info("decompressed %s -> %s (%s)", src.name, dst, U.human_bytes(dst.stat().st_size))
        return dst

    # ------------------------------------------------------------------
    # internals
    # ------------------------------------------------------------------

    @staticmethod
    def _prepare_output(src: Path, ctx: RunContext) -> Path:
        dst = output_path(src, ctx.workdir)
        if not ctx.overwrite and dst.exists():
            raise FileIoError(
                msg=f"Refusing to overwrite existing file: {dst}",
                context={"path": str(dst)},
            )
        return dst

    @staticmethod
    def _iter_entry(entry: BinaryIO, src: Path, ctx: RunContext) -> Iterator[bytes]:
        # ZipExtFile checks the entry CRC once the last byte has been read.
        while True:
            try:
                chunk = entry.read(ctx.chunk_size)
            except _DECODE_ERRORS as e:
                raise _decode_error("zip", src, e) from e
            if not chunk:
                return
            yield chunk

    @staticmethod
    def _materialize(
        dst: Path,
        chunks: Iterator[bytes],
        on_write: Optional[Callable[[int], None]] = None,
    ) -> None:
        try:
            with atomic_write(dst) as out:
                for chunk in chunks:
                    _write(out, chunk, dst)
                    if on_write is not None:
                        on_write(len(chunk))
        except OSError as e:
            raise FileIoError(
                msg=f"Failed to create decompressed file: {dst}: {e}",
                cause=e,
                context={"path": str(dst)},
            ) from e

    @staticmethod
    def _stream(logger: logging.Logger, src: Path, codec: _Codec, ctx: RunContext) -> Path:
        logger.info("decompress %s file %s...", codec.label, src)
        dst = Decompress._prepare_output(src, ctx)

        try:
            f = open(src, "rb")
        except OSError as e:
            raise FileIoError(
                msg=f"Failed to open {codec.label} file: {src}: {e}",
                cause=e,
                context={"path": str(src)},
            ) from e

        with f:
            try:
                total: Optional[int] = src.stat().st_size
            except OSError:
                total = None
            with _progress(ctx, f"Decompressing {src.name}", total) as advance:
                Decompress._materialize(dst, _decode_stream(f, codec, ctx, src, advance))

        logger.info("decompressed %s -> %s (%s)", src.name, dst, U.human_bytes(dst.stat().st_size))
        return dst
