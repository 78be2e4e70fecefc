# Simple GPIO devices on top of pigpio: connection, LED output, push button.
import logging

import pigpio

logger = logging.getLogger(__name__)


class GpioUnavailable(RuntimeError):
    pass


def connect_pi(host=None, port=None):
    kwargs = {}
    if host:
        kwargs["host"] = host
    if port:
        kwargs["port"] = port
    pi = pigpio.pi(**kwargs)
    if not pi.connected:
        raise GpioUnavailable("Could not connect to pigpiod. Start it with: sudo systemctl enable --now pigpiod")
    return pi


class Led:
    def __init__(self, pi, gpio, active=False):
        self.pi = pi
        self.gpio = gpio
        self.pi.set_mode(gpio, pigpio.OUTPUT)
        self.active = active

    @property
    def active(self):
        return self._active

    @active.setter
    def active(self, value):
        self._active = bool(value)
        self.pi.write(self.gpio, 1 if self._active else 0)

    def toggle(self):
        self.active = not self.active

    def close(self):
        self.active = False


class Button:
    """Push button with press/release callbacks.

    With `inverted` (the default, button to ground with pull-up) a falling
    edge is a press.
    """

    def __init__(self, pi, gpio, inverted=True, debounce_ms=20, on_pressed=None, on_released=None):
        self.pi = pi
        self.gpio = gpio
        self.inverted = inverted
        self.on_pressed = on_pressed
        self.on_released = on_released
        self.active = False

        self.pi.set_mode(gpio, pigpio.INPUT)
        self.pi.set_pull_up_down(gpio, pigpio.PUD_UP if inverted else pigpio.PUD_DOWN)
        self.pi.set_glitch_filter(gpio, debounce_ms * 1000)
        self._callback = self.pi.callback(gpio, pigpio.EITHER_EDGE, self._on_edge)

    def _on_edge(self, gpio, level, tick):
        if level == pigpio.TIMEOUT:
            return
        pressed = (level == 0) == self.inverted
        self.active = pressed
        handler = self.on_pressed if pressed else self.on_released
        if handler is not None:
            handler(self)

    def close(self):
        if self._callback is not None:
            self._callback.cancel()
            self._callback = None
        self.pi.set_glitch_filter(self.gpio, 0)
