# Value types for sensor readings. Conversions are computed on access.
from dataclasses import dataclass


@dataclass(frozen=True)
class Temperature:
    celsius: float = 0.0

    @property
    def fahrenheit(self):
        return 1.8 * self.celsius + 32

    @classmethod
    def from_fahrenheit(cls, value):
        return cls((value - 32) / 1.8)


@dataclass(frozen=True)
class Humidity:
    percent: float = 0.0


@dataclass(frozen=True)
class Measurement:
    temperature: Temperature = Temperature()
    humidity: Humidity = Humidity()

    @classmethod
    def from_frame(cls, frame):
        # DHT11 sends zero fractions, only the integral bytes are used
        return cls(Temperature(float(frame.temperature)), Humidity(float(frame.humidity)))

    def as_dict(self):
        return {"Temperature": self.temperature.celsius, "Humidity": self.humidity.percent}
