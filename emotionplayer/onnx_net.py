"""A small ONNX model reader and numpy inference engine for feed-forward image networks."""

from __future__ import annotations

import struct
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field

import numpy as np
from numpy.lib.stride_tricks import sliding_window_view


class ModelError(Exception):
    """Raised when a model cannot be read or evaluated."""


# ---------------------------------------------------------------------------
# Protocol buffer wire format
# ---------------------------------------------------------------------------

def _read_varint(data: bytes, pos: int) -> tuple[int, int]:
    result = 0
    shift = 0
    while True:
        if pos >= len(data):
            raise ModelError("Truncated varint in model file")
        byte = data[pos]
        pos += 1
        result |= (byte & 0x7F) << shift
        if byte < 0x80:
            return result, pos
        shift += 7
        if shift > 70:
            raise ModelError("Malformed varint in model file")


def _signed(value: int) -> int:
    return value - (1 << 64) if value >= 1 << 63 else value


def _fields(data: bytes) -> Iterator[tuple[int, int, object]]:
    """Yield (field number, wire type, value) for each field in a message."""
    pos = 0
    end = len(data)
    while pos < end:
        key, pos = _read_varint(data, pos)
        number, wire_type = key >> 3, key & 7
        if wire_type == 0:
            value, pos = _read_varint(data, pos)
        elif wire_type == 1:
            value = data[pos:pos + 8]
            pos += 8
        elif wire_type == 2:
            length, pos = _read_varint(data, pos)
            value = data[pos:pos + length]
            pos += length
        elif wire_type == 5:
            value = data[pos:pos + 4]
            pos += 4
        else:
            raise ModelError(f"Unsupported wire type {wire_type} in model file")
        if pos > end:
            raise ModelError("Truncated field in model file")
        yield number, wire_type, value


def _ints(wire_type: int, value) -> list[int]:
    """Decode a repeated integer field that may be packed."""
    if wire_type == 0:
        return [_signed(value)]
    if wire_type != 2:
        raise ModelError("Unexpected encoding of integer field")
    out = []
    pos = 0
    while pos < len(value):
        item, pos = _read_varint(value, pos)
        out.append(_signed(item))
    return out


def _floats(wire_type: int, value, fmt: str = "f") -> list[float]:
    size = struct.calcsize("<" + fmt)
    if wire_type in (1, 5):
        return [struct.unpack("<" + fmt, value)[0]]
    if wire_type != 2 or len(value) % size:
        raise ModelError("Unexpected encoding of floating-point field")
    return list(struct.unpack(f"<{len(value) // size}{fmt}", value))


def _text(value) -> str:
    try:
        return bytes(value).decode("utf-8")
    except UnicodeDecodeError as exc:
        raise ModelError("Invalid text in model file") from exc


_DTYPES = {
    1: np.float32, 2: np.uint8, 3: np.int8, 4: np.uint16, 5: np.int16,
    6: np.int32, 7: np.int64, 9: np.bool_, 10: np.float16, 11: np.float64,
    12: np.uint32, 13: np.uint64,
}


def _parse_tensor(data: bytes) -> tuple[str, np.ndarray]:
    dims: list[int] = []
    data_type = 1
    name = ""
    raw = None
    float_data: list[float] = []
    double_data: list[float] = []
    int32_data: list[int] = []
    int64_data: list[int] = []
    uint64_data: list[int] = []
    for number, wire_type, value in _fields(data):
        if number == 1:
            dims.extend(_ints(wire_type, value))
        elif number == 2:
            data_type = value
        elif number == 4:
            float_data.extend(_floats(wire_type, value))
        elif number == 5:
            int32_data.extend(_ints(wire_type, value))
        elif number == 7:
            int64_data.extend(_ints(wire_type, value))
        elif number == 8:
            name = _text(value)
        elif number == 9:
            raw = bytes(value)
        elif number == 10:
            double_data.extend(_floats(wire_type, value, "d"))
        elif number == 11:
            uint64_data.extend(v & ((1 << 64) - 1) for v in _ints(wire_type, value))
    dtype = _DTYPES.get(data_type)
    if dtype is None:
        raise ModelError(f"Unsupported tensor data type {data_type}")
    if raw is not None:
        array = np.frombuffer(raw, dtype=np.dtype(dtype).newbyteorder("<")).astype(dtype)
    elif dtype is np.float32:
        array = np.array(float_data, dtype=dtype)
    elif dtype is np.float64:
        array = np.array(double_data, dtype=dtype)
    elif dtype is np.int64:
        array = np.array(int64_data, dtype=dtype)
    elif dtype in (np.uint32, np.uint64):
        array = np.array(uint64_data, dtype=dtype)
    elif dtype is np.float16:
        array = np.array(int32_data, dtype=np.uint16).view(np.float16)
    else:
        array = np.array(int32_data, dtype=dtype)
    try:
        return name, array.reshape(dims)
    except ValueError as exc:
        raise ModelError(f"Tensor {name!r} has data that does not fit its shape") from exc


def _parse_attribute(data: bytes) -> tuple[str, object]:
    name = ""
    attr_type = 0
    found: dict[int, object] = {}
    floats: list[float] = []
    ints: list[int] = []
    strings: list[str] = []
    for number, wire_type, value in _fields(data):
        if number == 1:
            name = _text(value)
        elif number == 2:
            found[1] = _floats(wire_type, value)[0]
        elif number == 3:
            found[2] = _signed(value) if wire_type == 0 else _ints(wire_type, value)[0]
        elif number == 4:
            found[3] = _text(value)
        elif number == 5:
            found[4] = _parse_tensor(value)[1]
        elif number == 7:
            floats.extend(_floats(wire_type, value))
            found[6] = floats
        elif number == 8:
            ints.extend(_ints(wire_type, value))
            found[7] = ints
        elif number == 9:
            strings.append(_text(value))
            found[8] = strings
        elif number == 20:
            attr_type = value
    if attr_type in found:
        return name, found[attr_type]
    if attr_type in (6, 7, 8):
        return name, []
    if found:
        return name, next(iter(found.values()))
    return name, None


@dataclass
class _Node:
    op_type: str
    inputs: list[str]
    outputs: list[str]
    attributes: dict[str, object] = field(default_factory=dict)


def _parse_node(data: bytes) -> _Node:
    node = _Node("", [], [])
    for number, _wire_type, value in _fields(data):
        if number == 1:
            node.inputs.append(_text(value))
        elif number == 2:
            node.outputs.append(_text(value))
        elif number == 4:
            node.op_type = _text(value)
        elif number == 5:
            key, attr = _parse_attribute(value)
            node.attributes[key] = attr
    return node


def _value_info_name(data: bytes) -> str:
    for number, _wire_type, value in _fields(data):
        if number == 1:
            return _text(value)
    return ""


# ---------------------------------------------------------------------------
# Operators
# ---------------------------------------------------------------------------

def _spatial_pads(attrs, in_hw, kernel, strides, dilations) -> list[int]:
    auto_pad = attrs.get("auto_pad", "NOTSET")
    if auto_pad in ("SAME_UPPER", "SAME_LOWER"):
        begins, ends = [], []
        for size, k, s, d in zip(in_hw, kernel, strides, dilations):
            out = -(-size // s)
            total = max(0, (out - 1) * s + (k - 1) * d + 1 - size)
            small, large = total // 2, total - total // 2
            if auto_pad == "SAME_UPPER":
                begins.append(small)
                ends.append(large)
            else:
                begins.append(large)
                ends.append(small)
        return begins + ends
    if auto_pad == "VALID":
        return [0, 0, 0, 0]
    pads = list(attrs.get("pads", [0, 0, 0, 0]))
    if len(pads) != 4:
        raise ModelError("Only two-dimensional padding is supported")
    return pads


def _windows(x, kernel, strides, dilations, pads, fill):
    if x.ndim != 4:
        raise ModelError("Only NCHW inputs are supported for spatial operators")
    padded = np.pad(
        x, ((0, 0), (0, 0), (pads[0], pads[2]), (pads[1], pads[3])), constant_values=fill
    )
    eff_h = (kernel[0] - 1) * dilations[0] + 1
    eff_w = (kernel[1] - 1) * dilations[1] + 1
    if padded.shape[2] < eff_h or padded.shape[3] < eff_w:
        raise ModelError("Kernel is larger than the padded input")
    view = sliding_window_view(padded, (eff_h, eff_w), axis=(2, 3))
    return view[:, :, ::strides[0], ::strides[1], ::dilations[0], ::dilations[1]]


def _pool_geometry(x, attrs):
    kernel = list(attrs.get("kernel_shape", []))
    if len(kernel) != 2:
        raise ModelError("Pooling needs a two-dimensional kernel_shape")
    strides = list(attrs.get("strides", [1, 1]))
    dilations = list(attrs.get("dilations", [1, 1]))
    pads = _spatial_pads(attrs, x.shape[2:], kernel, strides, dilations)
    return kernel, strides, dilations, pads


def _conv(inputs, attrs):
    x, w = inputs[0], inputs[1]
    bias = inputs[2] if len(inputs) > 2 else None
    kernel = list(w.shape[2:])
    strides = list(attrs.get("strides", [1, 1]))
    dilations = list(attrs.get("dilations", [1, 1]))
    group = int(attrs.get("group", 1))
    pads = _spatial_pads(attrs, x.shape[2:], kernel, strides, dilations)
    win = _windows(x, kernel, strides, dilations, pads, 0)
    if x.shape[1] != w.shape[1] * group or w.shape[0] % group:
        raise ModelError("Conv weights do not match the input channels")
    outputs = [
        np.einsum("nchwkl,mckl->nmhw", win_g, w_g)
        for win_g, w_g in zip(np.split(win, group, axis=1), np.split(w, group, axis=0))
    ]
    out = np.concatenate(outputs, axis=1)
    if bias is not None:
        out = out + bias.reshape(1, -1, 1, 1)
    return (out.astype(x.dtype, copy=False),)


def _max_pool(inputs, attrs):
    x = inputs[0]
    kernel, strides, dilations, pads = _pool_geometry(x, attrs)
    win = _windows(x, kernel, strides, dilations, pads, -np.inf)
    return (win.max(axis=(4, 5)).astype(x.dtype, copy=False),)


def _average_pool(inputs, attrs):
    x = inputs[0]
    kernel, strides, dilations, pads = _pool_geometry(x, attrs)
    total = _windows(x, kernel, strides, dilations, pads, 0).sum(axis=(4, 5))
    if attrs.get("count_include_pad", 0):
        count = kernel[0] * kernel[1]
    else:
        ones = np.ones((1, 1) + x.shape[2:], dtype=x.dtype)
        count = _windows(ones, kernel, strides, dilations, pads, 0).sum(axis=(4, 5))
    return ((total / count).astype(x.dtype, copy=False),)


def _gemm(inputs, attrs):
    a, b = inputs[0], inputs[1]
    if attrs.get("transA", 0):
        a = a.T
    if attrs.get("transB", 0):
        b = b.T
    out = float(attrs.get("alpha", 1.0)) * (a @ b)
    if len(inputs) > 2 and inputs[2] is not None:
        out = out + float(attrs.get("beta", 1.0)) * inputs[2]
    return (out.astype(inputs[0].dtype, copy=False),)


def _reshape(inputs, attrs):
    x = inputs[0]
    shape = [int(s) for s in np.asarray(inputs[1]).reshape(-1)]
    if not attrs.get("allowzero", 0):
        shape = [x.shape[i] if s == 0 else s for i, s in enumerate(shape)]
    try:
        return (x.reshape(shape),)
    except ValueError as exc:
        raise ModelError(f"Cannot reshape {x.shape} to {shape}") from exc


def _flatten(inputs, attrs):
    x = inputs[0]
    axis = int(attrs.get("axis", 1))
    if axis < 0:
        axis += x.ndim
    outer = int(np.prod(x.shape[:axis], dtype=np.int64))
    return (x.reshape(outer, -1),)


def _axes(inputs, attrs):
    if len(inputs) > 1 and inputs[1] is not None:
        return [int(a) for a in np.asarray(inputs[1]).reshape(-1)]
    axes = attrs.get("axes")
    return None if axes is None else list(axes)


def _squeeze(inputs, attrs):
    axes = _axes(inputs, attrs)
    return (np.squeeze(inputs[0], axis=None if axes is None else tuple(axes)),)


def _unsqueeze(inputs, attrs):
    x = inputs[0]
    axes = _axes(inputs, attrs) or []
    rank = x.ndim + len(axes)
    normalized = sorted(a + rank if a < 0 else a for a in axes)
    return (np.expand_dims(x, tuple(normalized)),)


def _softmax(inputs, attrs):
    x = inputs[0]
    axis = int(attrs.get("axis", -1))
    shifted = np.exp(x - x.max(axis=axis, keepdims=True))
    return (shifted / shifted.sum(axis=axis, keepdims=True),)


def _batch_norm(inputs, attrs):
    x, scale, bias, mean, var = inputs[:5]
    shape = (1, -1) + (1,) * (x.ndim - 2)
    eps = float(attrs.get("epsilon", 1e-5))
    out = (x - mean.reshape(shape)) / np.sqrt(var.reshape(shape) + eps)
    out = out * scale.reshape(shape) + bias.reshape(shape)
    return (out.astype(x.dtype, copy=False),)


def _constant(inputs, attrs):
    if "value" in attrs:
        return (np.asarray(attrs["value"]),)
    if "value_float" in attrs:
        return (np.array(attrs["value_float"], dtype=np.float32),)
    if "value_floats" in attrs:
        return (np.array(attrs["value_floats"], dtype=np.float32),)
    if "value_int" in attrs:
        return (np.array(attrs["value_int"], dtype=np.int64),)
    if "value_ints" in attrs:
        return (np.array(attrs["value_ints"], dtype=np.int64),)
    raise ModelError("Constant node carries no supported value")


def _dropout(inputs, attrs):
    x = inputs[0]
    return x, np.ones(x.shape, dtype=np.bool_)


def _transpose(inputs, attrs):
    perm = attrs.get("perm")
    return (np.transpose(inputs[0], None if perm is None else tuple(perm)),)


def _binary(fn):
    return lambda inputs, attrs: (fn(inputs[0], inputs[1]),)


def _unary(fn):
    return lambda inputs, attrs: (fn(inputs[0]),)


_OPS: dict[str, Callable] = {
    "Add": _binary(np.add),
    "Sub": _binary(np.subtract),
    "Mul": _binary(np.multiply),
    "Div": _binary(np.divide),
    "MatMul": _binary(np.matmul),
    "Relu": _unary(lambda x: np.maximum(x, 0).astype(x.dtype, copy=False)),
    "Sigmoid": _unary(lambda x: 1 / (1 + np.exp(-x))),
    "Tanh": _unary(np.tanh),
    "Identity": _unary(lambda x: x),
    "LeakyRelu": lambda inputs, attrs: (
        np.where(inputs[0] >= 0, inputs[0], inputs[0] * float(attrs.get("alpha", 0.01))),
    ),
    "Conv": _conv,
    "MaxPool": _max_pool,
    "AveragePool": _average_pool,
    "GlobalAveragePool": _unary(lambda x: x.mean(axis=tuple(range(2, x.ndim)), keepdims=True)),
    "Gemm": _gemm,
    "Reshape": _reshape,
    "Flatten": _flatten,
    "Squeeze": _squeeze,
    "Unsqueeze": _unsqueeze,
    "Softmax": _softmax,
    "BatchNormalization": _batch_norm,
    "Constant": _constant,
    "Dropout": _dropout,
    "Transpose": _transpose,
    "Concat": lambda inputs, attrs: (
        np.concatenate(inputs, axis=int(attrs.get("axis", 0))),
    ),
    "Shape": _unary(lambda x: np.array(x.shape, dtype=np.int64)),
    "Gather": lambda inputs, attrs: (
        np.take(inputs[0], np.asarray(inputs[1]).astype(np.int64), axis=int(attrs.get("axis", 0))),
    ),
}


# ---------------------------------------------------------------------------
# Network
# ---------------------------------------------------------------------------

class Network:
    """A loaded computation graph that maps one input tensor to one output tensor."""

    def __init__(self, nodes, initializers, inputs, outputs) -> None:
        self._nodes: list[_Node] = list(nodes)
        self._initializers: dict[str, np.ndarray] = dict(initializers)
        self.inputs: list[str] = [name for name in inputs if name not in self._initializers]
        self.outputs: list[str] = list(outputs)
        for node in self._nodes:
            if node.op_type not in _OPS:
                raise ModelError(f"Unsupported operator: {node.op_type}")
        if not self.inputs:
            raise ModelError("Model has no input")
        if not self.outputs:
            raise ModelError("Model has no output")

    def forward(self, blob) -> np.ndarray:
        """Run the graph on ``blob`` and return the first output."""
        values = dict(self._initializers)
        values[self.inputs[0]] = np.asarray(blob, dtype=np.float32)
        for node in self._nodes:
            args = []
            for name in node.inputs:
                if not name:
                    args.append(None)
                    continue
                if name not in values:
                    raise ModelError(f"Value {name!r} is not available for {node.op_type}")
                args.append(values[name])
            try:
                results = _OPS[node.op_type](args, node.attributes)
            except ModelError:
                raise
            except (ValueError, TypeError, IndexError) as exc:
                raise ModelError(f"{node.op_type} failed: {exc}") from exc
            for name, result in zip(node.outputs, results):
                if name:
                    values[name] = np.asarray(result)
        try:
            return values[self.outputs[0]]
        except KeyError:
            raise ModelError(f"Output {self.outputs[0]!r} was never computed") from None


def _parse_model(data: bytes) -> Network:
    graph = None
    for number, wire_type, value in _fields(data):
        if number == 7 and wire_type == 2:
            graph = value
    if graph is None:
        raise ModelError("Model file holds no graph")
    nodes, initializers, inputs, outputs = [], {}, [], []
    for number, wire_type, value in _fields(graph):
        if wire_type != 2:
            continue
        if number == 1:
            nodes.append(_parse_node(value))
        elif number == 5:
            name, tensor = _parse_tensor(value)
            initializers[name] = tensor
        elif number == 11:
            inputs.append(_value_info_name(value))
        elif number == 12:
            outputs.append(_value_info_name(value))
    return Network(nodes, initializers, inputs, outputs)


def read_net_from_onnx(path) -> Network:
    """Read an ONNX model file and return a runnable network."""
    try:
        with open(path, "rb") as file:
            data = file.read()
    except OSError as exc:
        raise ModelError(f"Cannot read model file: {path}") from exc
    return _parse_model(data)