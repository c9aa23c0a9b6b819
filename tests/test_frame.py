"""Tests for the Modbus-TCP frame codec: request layout and fixed-offset response fields."""

import pytest

from pyxbm_modbus import decode_request, encode_read_request, encode_write_coil_request
from pyxbm_modbus.errors import ProtocolError
from pyxbm_modbus.frame import ModbusResponse
from pyxbm_modbus.types import FunctionCode, ModbusRequest, PLCStatus

from conftest import exception_response, register_response, status_response


def test_read_status_request_bytes() -> None:
    frame = encode_read_request(0, FunctionCode.READ_INPUT_STATUS, 0, 1)
    assert frame == bytes([0, 0, 0, 0, 0, 6, 0, 0x02, 0, 0, 0, 1])


def test_read_register_request_is_big_endian() -> None:
    frame = encode_read_request(1, FunctionCode.READ_HOLDING_REGISTERS, 0x1234, 0x0102, transaction_id=0xABCD)
    assert len(frame) == 12
    assert frame[0:2] == b"\xab\xcd"
    assert frame[2:4] == b"\x00\x00"
    assert frame[4:6] == b"\x00\x06"
    assert frame[6] == 1
    assert frame[7] == 0x03
    assert frame[8:10] == b"\x12\x34"
    assert frame[10:12] == b"\x01\x02"


@pytest.mark.parametrize(
    ("on", "word"),
    [(True, b"\xff\x00"), (False, b"\x00\x00")],
)
def test_write_coil_request(on: bool, word: bytes) -> None:
    frame = encode_write_coil_request(0, 1, on)
    assert frame == bytes([0, 0, 0, 0, 0, 6, 0, 0x05, 0, 1]) + word


def test_write_coil_transaction_id_is_network_order() -> None:
    frame = encode_write_coil_request(0, 0, True, transaction_id=0x0102)
    assert frame[0:2] == b"\x01\x02"


@pytest.mark.parametrize(
    ("address", "count"),
    [(0, 0), (0, 1), (1, 0xFFFF), (0x00FF, 0xFF00), (0x7FFF, 0x8000), (0xFFFF, 0xFFFF)],
)
@pytest.mark.parametrize("fc", [FunctionCode.READ_INPUT_STATUS, FunctionCode.READ_HOLDING_REGISTERS])
def test_read_request_header_fields_survive_decode(fc: FunctionCode, address: int, count: int) -> None:
    req = decode_request(encode_read_request(7, fc, address, count))
    assert req == ModbusRequest(unit_id=7, function_code=fc, address=address, value=count)


def test_read_request_rejects_write_function() -> None:
    with pytest.raises(ValueError, match="Not a read function code"):
        encode_read_request(0, FunctionCode.WRITE_SINGLE_COIL, 0, 1)


@pytest.mark.parametrize(
    "kwargs",
    [
        {"address": -1, "count": 1},
        {"address": 0x10000, "count": 1},
        {"address": 0, "count": 0x10000},
    ],
)
def test_read_request_out_of_range(kwargs: dict) -> None:
    with pytest.raises(ValueError, match="0..0xFFFF"):
        encode_read_request(0, FunctionCode.READ_HOLDING_REGISTERS, **kwargs)


def test_unit_id_out_of_range() -> None:
    with pytest.raises(ValueError, match="unit_id"):
        encode_write_coil_request(256, 0, True)


def test_decode_request_wrong_size() -> None:
    with pytest.raises(ProtocolError, match="12 bytes"):
        decode_request(b"\x00" * 11)


@pytest.mark.parametrize(
    ("byte", "expected"),
    [(0, PLCStatus.STOPPED), (1, PLCStatus.RUNNING), (2, None), (0xFF, None)],
)
def test_response_status(byte: int, expected: PLCStatus | None) -> None:
    assert ModbusResponse(status_response(byte)).status is expected


def test_response_register_value() -> None:
    assert ModbusResponse(register_response(300)).register_value == 300
    assert ModbusResponse(bytes(9) + b"\x01\x2c").register_value == 300
    assert ModbusResponse(register_response(0xFFFF)).register_value == 0xFFFF


def test_truncated_response_raises_protocol_error() -> None:
    resp = ModbusResponse(register_response(300)[:10])
    with pytest.raises(ProtocolError, match="too short") as exc_info:
        _ = resp.register_value
    assert exc_info.value.frame == resp.raw
    with pytest.raises(ProtocolError):
        _ = ModbusResponse(b"").status


def test_response_buffer_is_bounded() -> None:
    assert len(ModbusResponse(bytes(1000))) == 256


def test_exception_response() -> None:
    resp = ModbusResponse(exception_response(0x05, 0x02))
    assert resp.is_exception
    assert resp.exception_code == 0x02
    with pytest.raises(ProtocolError, match="exception code 0x02 for function 0x05"):
        resp.raise_for_exception()


def test_normal_response_does_not_raise() -> None:
    frame = encode_write_coil_request(0, 0, True)
    ModbusResponse(frame).raise_for_exception()
