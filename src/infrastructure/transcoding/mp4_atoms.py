"""Разбор атомов верхнего уровня ISO base media (MP4/QuickTime)."""

import struct
from pathlib import Path
from typing import BinaryIO, Iterator, Tuple, Union


def _read_atoms(fh: BinaryIO, file_size: int) -> Iterator[Tuple[str, int, int]]:
	offset = 0
	while offset + 8 <= file_size:
		fh.seek(offset)
		header = fh.read(8)
		if len(header) < 8:
			return
		size, kind = struct.unpack(">I4s", header)
		header_size = 8
		if size == 1:
			large = fh.read(8)
			if len(large) < 8:
				return
			size = struct.unpack(">Q", large)[0]
			header_size = 16
		elif size == 0:
			size = file_size - offset
		if size < header_size:
			# битый размер атома, дальше разбирать нельзя
			return
		yield kind.decode("latin-1"), offset, size
		offset += size


def iter_top_level_atoms(path: Union[str, Path]) -> Iterator[Tuple[str, int, int]]:
	"""(тип, смещение, размер) для каждого атома верхнего уровня"""
	path = Path(path)
	file_size = path.stat().st_size
	with path.open("rb") as fh:
		yield from _read_atoms(fh, file_size)


def is_fast_start(path: Union[str, Path]) -> bool:
	"""True, если moov идет раньше первого mdat"""
	for kind, _, _ in iter_top_level_atoms(path):
		if kind == "moov":
			return True
		if kind == "mdat":
			return False
	return False
