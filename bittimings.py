# Bit timings for the DHT11 single wire protocol and the decoder that turns
# captured falling edges into the 5 byte frame.
from dataclasses import dataclass
from typing import NamedTuple


@dataclass(frozen=True)
class Communication:
    wake_ms: int = 18            # host pulls the line down for at least 18 ms
    bit_one_min_us: int = 110    # doc: 54 + 70 = 124
    bit_zero_max_us: int = 105   # doc: 54 + 24 = 78
    data_bits: int = 40
    framing_edges: int = 3       # start, sensor response, stop

    @property
    def total_edges(self):
        return self.data_bits + self.framing_edges

    @property
    def frame_bytes(self):
        return self.data_bits // 8


DHT11 = Communication()


class Frame(NamedTuple):
    humidity: int
    humidity_fraction: int
    temperature: int
    temperature_fraction: int
    checksum: int


class DecodeError(ValueError):
    pass


class BitTimeError(DecodeError):
    def __init__(self, index, interval_us):
        super().__init__("bit %d: %d us is neither a zero nor a one" % (index, interval_us))
        self.index = index
        self.interval_us = interval_us


class ChecksumError(DecodeError):
    def __init__(self, expected, received):
        super().__init__("checksum 0x%02x, data sums to 0x%02x" % (received, expected))
        self.expected = expected
        self.received = received


def classify_interval(interval_us, timings=DHT11):
    """Return 0 or 1 for a falling-to-falling interval, None if it is in the dead band."""
    if interval_us <= timings.bit_zero_max_us:
        return 0
    if interval_us >= timings.bit_one_min_us:
        return 1
    return None


def decode_bits(timestamps, timings=DHT11):
    """Decode edge timestamps (microseconds, capture order) into bytes.

    The first two edges are the host start and the sensor response; every
    following pair of edges brackets one data bit, MSB first.
    """
    timestamps = list(timestamps)
    if len(timestamps) != timings.total_edges:
        raise DecodeError("expected %d edges, got %d" % (timings.total_edges, len(timestamps)))

    data = timestamps[2:]
    received = bytearray(timings.frame_bytes)
    for i in range(1, len(data)):
        interval = data[i] - data[i - 1]
        bit = classify_interval(interval, timings)
        if bit is None:
            raise BitTimeError(i - 1, interval)
        index = (i - 1) // 8
        received[index] = ((received[index] << 1) | bit) & 0xff
    return bytes(received)


def verify_checksum(data):
    expected = sum(data[:-1]) % 256
    if expected != data[-1]:
        raise ChecksumError(expected, data[-1])
    return data


def decode_frame(timestamps, timings=DHT11):
    return Frame._make(verify_checksum(decode_bits(timestamps, timings)))
