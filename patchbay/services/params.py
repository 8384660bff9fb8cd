"""Parsing of ALSA hw-params dumps into typed device parameters.

``aplay --dump-hw-params`` prints a block such as::

    HW Params of device "hw:0,0":
    --------------------
    ACCESS:  MMAP_INTERLEAVED RW_INTERLEAVED
    FORMAT:  S16_LE S32_LE
    CHANNELS: 2
    RATE: [44100 192000]
    PERIODS: [2 32]
    --------------------

Parsing happens in two stages: the block between the first pair of dash
delimiters is isolated, then each ``KEY: value`` line is classified.
"""

import re

from ..constants import DEFAULT_PARAM_PERIODS, DEFAULT_PARAM_RATE, DUMP_DELIMITER_PATTERN
from ..models import DeviceParams, ParamRange, ParamValue

_SCALAR_PATTERN = re.compile(r"^\d+$")
_DASH_RANGE_PATTERN = re.compile(r"^(\d+)-(\d+)$")
# Looser than the dash form: also matches "[44100 48000]" or "RATE 44100 48000"
_PAIR_PATTERN = re.compile(r"(\d+)\s+(\d+)")
# Colon must be followed by whitespace, so "hw:0,0" style values are not keys
_KEY_VALUE_PATTERN = re.compile(r"^(?P<key>[^:]+):\s+(?P<value>.*)$")


def _make_range(first: str, second: str) -> ParamRange:
    low, high = sorted((int(first), int(second)))
    return ParamRange(min=low, max=high)


def parse_param_value(text: str) -> ParamValue:
    """Classify a raw parameter value.

    Examples:
        "48000" -> 48000
        "44100-48000" -> ParamRange(min=44100, max=48000)
        "[2 8]" -> ParamRange(min=2, max=8)
        "S16_LE" -> "S16_LE"
    """
    if _SCALAR_PATTERN.match(text):
        return int(text)

    match = _DASH_RANGE_PATTERN.match(text)
    if match:
        return _make_range(match.group(1), match.group(2))

    match = _PAIR_PATTERN.search(text)
    if match:
        return _make_range(match.group(1), match.group(2))

    return text


def snake_to_camel(key: str) -> str:
    """Convert a dump key to camelCase ("PERIOD_TIME" -> "periodTime")."""
    return re.sub(r"_(.)", lambda m: m.group(1).upper(), key.lower())


def default_device_params() -> DeviceParams:
    """Return the seed values every parameter set starts from."""
    return {"rate": DEFAULT_PARAM_RATE, "periods": DEFAULT_PARAM_PERIODS}


def extract_dump_block(output: str) -> str | None:
    """Return the text between the first pair of dash delimiter lines.

    Returns None when the output does not contain a complete block.
    """
    lines = output.splitlines()
    delimiters = [i for i, line in enumerate(lines) if DUMP_DELIMITER_PATTERN.match(line)]
    if len(delimiters) < 2:
        return None
    start, end = delimiters[0], delimiters[1]
    return "\n".join(lines[start + 1 : end])


def parse_dump_block(block: str) -> DeviceParams:
    """Parse an isolated dump block into DeviceParams."""
    params = default_device_params()
    for line in block.splitlines():
        match = _KEY_VALUE_PATTERN.match(line.strip())
        if not match:
            continue
        key = match.group("key").strip()
        if not key:
            continue
        params[snake_to_camel(key)] = parse_param_value(match.group("value").strip())
    return params


def parse_hw_params_output(output: str) -> DeviceParams | None:
    """Parse full probe output, or None if it holds no dump block."""
    block = extract_dump_block(output)
    if block is None:
        return None
    return parse_dump_block(block)
