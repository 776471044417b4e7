"""SafeTensors export of generated splits and the JSON run manifest.

A dataset directory holds ``sequences.safetensors`` with the generated
tensors and ``metadata.json`` with the :class:`Manifest`.
"""

from __future__ import annotations

import json
import math
import struct
from collections.abc import Mapping
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Optional, Union

import numpy as np

from snlds.generate import (
    DEFAULT_INIT_MEAN_STD,
    DEFAULT_INIT_NOISE_STD,
    DEFAULT_TRANSITION_STEP_VAR,
    TrainTest,
)
from snlds.transitions import EMISSION_HIDDEN_DIM

__all__ = [
    "MANIFEST_SCHEMA_VERSION",
    "SEQUENCES_FILE",
    "METADATA_FILE",
    "Manifest",
    "encode_safetensors",
    "decode_safetensors",
    "read_safetensors",
    "save_train_test",
    "load_manifest",
    "load_tensor_f32",
    "load_tensor_i32",
]

MANIFEST_SCHEMA_VERSION = 5
"""Version 5 adds the held-out eval split (``*_eval`` tensors, ``num_samples_eval``)."""

SEQUENCES_FILE = "sequences.safetensors"
METADATA_FILE = "metadata.json"

PathLike = Union[str, Path]

_DTYPES: dict[str, np.dtype] = {
    "BOOL": np.dtype("?"),
    "U8": np.dtype("u1"),
    "I8": np.dtype("i1"),
    "I16": np.dtype("<i2"),
    "U16": np.dtype("<u2"),
    "F16": np.dtype("<f2"),
    "I32": np.dtype("<i4"),
    "U32": np.dtype("<u4"),
    "F32": np.dtype("<f4"),
    "F64": np.dtype("<f8"),
    "I64": np.dtype("<i8"),
    "U64": np.dtype("<u8"),
}
_DTYPE_NAMES: dict[np.dtype, str] = {
    dtype.newbyteorder("="): name for name, dtype in _DTYPES.items()
}
_METADATA_KEY = "__metadata__"


@dataclass
class Manifest:
    """Run metadata written next to ``sequences.safetensors``."""

    schema_version: int
    seed: int
    num_states: int
    dim_obs: int
    dim_latent: int
    seq_length: int
    num_samples: int
    sparsity_prob: float
    data_type: str
    degree: Optional[int] = None
    init_noise_std: float = DEFAULT_INIT_NOISE_STD
    init_mean_std: float = DEFAULT_INIT_MEAN_STD
    transition_step_var: float = DEFAULT_TRANSITION_STEP_VAR
    emission_hidden_dim: int = EMISSION_HIDDEN_DIM
    num_samples_eval: int = 0

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready mapping; ``degree`` is left out when it is ``None``."""
        data = asdict(self)
        if data["degree"] is None:
            del data["degree"]
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Manifest":
        """Build a manifest from parsed JSON, filling fields missing from older schemas."""
        converters = {
            "schema_version": int,
            "seed": int,
            "num_states": int,
            "dim_obs": int,
            "dim_latent": int,
            "seq_length": int,
            "num_samples": int,
            "sparsity_prob": float,
            "data_type": str,
            "degree": lambda value: None if value is None else int(value),
            "init_noise_std": float,
            "init_mean_std": float,
            "transition_step_var": float,
            "emission_hidden_dim": int,
            "num_samples_eval": int,
        }
        required = [f.name for f in fields(cls) if f.name not in _OPTIONAL_FIELDS]
        missing = [name for name in required if name not in data]
        if missing:
            raise ValueError(f"manifest is missing field(s): {', '.join(missing)}")
        kwargs = {
            name: convert(data[name]) for name, convert in converters.items() if name in data
        }
        return cls(**kwargs)


_OPTIONAL_FIELDS = frozenset(
    {
        "degree",
        "init_noise_std",
        "init_mean_std",
        "transition_step_var",
        "emission_hidden_dim",
        "num_samples_eval",
    }
)


def encode_safetensors(tensors: Mapping[str, np.ndarray]) -> bytes:
    """Serialise named arrays into SafeTensors bytes (little-endian, 8-byte aligned header)."""
    prepared = []
    for name, value in tensors.items():
        if name == _METADATA_KEY:
            raise ValueError(f"tensor name {name!r} is reserved")
        array = np.asarray(value)
        dtype_name = _DTYPE_NAMES.get(array.dtype.newbyteorder("="))
        if dtype_name is None:
            raise ValueError(f"tensor {name!r}: unsupported dtype {array.dtype}")
        raw = np.ascontiguousarray(array, dtype=_DTYPES[dtype_name]).tobytes()
        prepared.append((name, dtype_name, list(array.shape), raw))

    prepared.sort(key=lambda item: (-_DTYPES[item[1]].itemsize, item[0]))

    header: dict[str, Any] = {}
    offset = 0
    for name, dtype_name, shape, raw in prepared:
        header[name] = {
            "dtype": dtype_name,
            "shape": shape,
            "data_offsets": [offset, offset + len(raw)],
        }
        offset += len(raw)

    header_bytes = json.dumps(header, separators=(",", ":")).encode("utf-8")
    header_bytes += b" " * (-len(header_bytes) % 8)
    body = b"".join(raw for *_, raw in prepared)
    return struct.pack("<Q", len(header_bytes)) + header_bytes + body


def decode_safetensors(data: bytes) -> dict[str, np.ndarray]:
    """Parse SafeTensors bytes into a mapping of name to native-endian array."""
    if len(data) < 8:
        raise ValueError("safetensors data is shorter than its 8-byte header length")
    (header_len,) = struct.unpack("<Q", data[:8])
    header_end = 8 + header_len
    if header_end > len(data):
        raise ValueError(f"safetensors header length {header_len} exceeds the data size")
    try:
        header = json.loads(data[8:header_end].decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise ValueError(f"invalid safetensors header: {exc}") from exc
    if not isinstance(header, dict):
        raise ValueError("safetensors header must be a JSON object")

    buffer = memoryview(data)[header_end:]
    tensors: dict[str, np.ndarray] = {}
    for name, info in header.items():
        if name == _METADATA_KEY:
            continue
        try:
            dtype = _DTYPES[info["dtype"]]
            shape = tuple(int(dim) for dim in info["shape"])
            begin, end = (int(v) for v in info["data_offsets"])
        except (KeyError, TypeError, ValueError) as exc:
            raise ValueError(f"tensor {name!r}: malformed header entry {info!r}") from exc
        expected = math.prod(shape) * dtype.itemsize
        if not 0 <= begin <= end <= len(buffer) or end - begin != expected:
            raise ValueError(
                f"tensor {name!r}: data offsets [{begin}, {end}] do not fit shape {list(shape)}"
            )
        array = np.frombuffer(buffer[begin:end], dtype=dtype).reshape(shape)
        tensors[name] = array.astype(dtype.newbyteorder("="))
    return tensors


def read_safetensors(path: PathLike) -> dict[str, np.ndarray]:
    """Read every tensor from a ``.safetensors`` file."""
    return decode_safetensors(Path(path).read_bytes())


def save_train_test(out_dir: PathLike, tt: TrainTest, manifest: Manifest) -> None:
    """Write ``sequences.safetensors`` and ``metadata.json`` into ``out_dir``."""
    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)

    f32 = lambda array: np.asarray(array, dtype=np.float32)  # noqa: E731
    i32 = lambda array: np.asarray(array, dtype=np.int32)  # noqa: E731
    # The eval tensors are always written, zero-row when there is no eval split.
    tensors = {
        "latents_train": f32(tt.latents_train),
        "latents_test": f32(tt.latents_test),
        "latents_eval": f32(tt.latents_eval),
        "obs_train": f32(tt.obs_train),
        "obs_test": f32(tt.obs_test),
        "obs_eval": f32(tt.obs_eval),
        "states_train": i32(tt.states_train),
        "states_test": i32(tt.states_test),
        "states_eval": i32(tt.states_eval),
        "q_true": f32(tt.q_true),
        "pi_true": f32(tt.pi_true),
    }
    (out_dir / SEQUENCES_FILE).write_bytes(encode_safetensors(tensors))
    (out_dir / METADATA_FILE).write_text(
        json.dumps(manifest.to_dict(), indent=2), encoding="utf-8"
    )


def load_manifest(path: PathLike) -> Manifest:
    """Load a ``metadata.json`` written by :func:`save_train_test`."""
    path = Path(path)
    text = path.read_text(encoding="utf-8")
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ValueError(f"parse manifest {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ValueError(f"parse manifest {path}: expected a JSON object")
    try:
        return Manifest.from_dict(data)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"parse manifest {path}: {exc}") from exc


def _load_typed(st_path: PathLike, name: str, dtype: type, label: str) -> np.ndarray:
    tensors = read_safetensors(st_path)
    if name not in tensors:
        raise KeyError(f"tensor {name!r} not found in {st_path}")
    array = tensors[name]
    if array.dtype != np.dtype(dtype):
        got = _DTYPE_NAMES.get(array.dtype, str(array.dtype))
        raise ValueError(f"tensor {name!r}: expected {label}, got {got}")
    return array


def load_tensor_f32(st_path: PathLike, name: str) -> np.ndarray:
    """Load one ``F32`` tensor; raises ``ValueError`` for any other dtype."""
    return _load_typed(st_path, name, np.float32, "F32")


def load_tensor_i32(st_path: PathLike, name: str) -> np.ndarray:
    """Load one ``I32`` tensor; raises ``ValueError`` for any other dtype."""
    return _load_typed(st_path, name, np.int32, "I32")