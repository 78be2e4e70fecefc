# Raspberry Pi room monitor: DHT11 temperature/humidity over MQTT, plus a status
# LED that can be toggled by the push button or remotely.
#
# pigpiod must be running on the Pi (sudo systemctl enable --now pigpiod).
# The DHT11 data line is wired to SENSOR_INPUT_PIN, the wake pulse is driven
# from SENSOR_OUTPUT_PIN through a transistor pulling the data line down.
import argparse
import asyncio
import contextlib
import functools
import logging
import signal
import sys
import threading

import network_config
import projectconfig
from dhtreader import DhtReader, ErrorType
from iodevices import Button, GpioUnavailable, Led, connect_pi
from measurements import Measurement
from netdevice import NetDevice
from repeatingtask import repeat

logger = logging.getLogger(__name__)

# shared between the sensor callback and the publisher
measurement_lock = threading.Lock()
latest_measurement = Measurement()

# LED is switched from the button (pigpio thread) and MQTT (paho thread)
led_lock = threading.Lock()

ERROR_MESSAGES = {
    ErrorType.TIMEOUT: "Response timeout",
    ErrorType.BIT_COUNT: "Wrong number of the received bits",
    ErrorType.BIT_TIME: "Couldn't decode at least one of the received bits",
    ErrorType.CHECKSUM: "Wrong checksum",
}


def on_read_error(error, edges):
    logger.warning("Failed to read data from the sensor: %s, received %d edges", ERROR_MESSAGES[error], edges)


def on_measurements_read(temperature, humidity):
    global latest_measurement
    with measurement_lock:
        latest_measurement = Measurement(temperature, humidity)
    logger.info("Temperature: %.0f°C, humidity: %.0f%%", temperature.celsius, humidity.percent)


def current_measurement():
    with measurement_lock:
        return latest_measurement


def publish(device):
    if not device.connected:
        return
    device.publish_measurement(network_config.MQTT_TOPIC_MEASUREMENTS, current_measurement())


def led_commands(led):
    def led_on(sender):
        with led_lock:
            led.active = True

    def led_off(sender):
        with led_lock:
            led.active = False

    def switch_led(sender):
        with led_lock:
            led.toggle()

    return {"led on": led_on, "led off": led_off, "switch led": switch_led}


async def run(args, stop_event=None):
    """Run until SIGINT/SIGTERM, `stop_event`, or the sensor schedule failing.

    Every GPIO resource is released on the way out, also when the sensor
    task ended with an error; that error is re-raised afterwards.
    """
    pi = connect_pi(args.host, args.port)
    if stop_event is None:
        stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()

    async with contextlib.AsyncExitStack() as resources:
        # released in reverse order of registration
        resources.callback(pi.stop)
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, stop_event.set)
            resources.callback(loop.remove_signal_handler, sig)

        # --- LED and button ---
        led = Led(pi, projectconfig.LED_PIN)
        resources.callback(led.close)
        commands = led_commands(led)
        button = Button(pi, projectconfig.BUTTON_PIN, debounce_ms=projectconfig.BUTTON_DEBOUNCE_MS,
                        on_pressed=commands["switch led"])
        resources.callback(button.close)

        # --- MQTT ---
        device = None
        if not args.no_mqtt:
            device = NetDevice(network_config.MQTT_CLIENT_ID,
                               network_config.MQTT_username, network_config.MQTT_password,
                               network_config.MQTT_BROKER, network_config.MQTT_PORT,
                               reconnect_time=network_config.MQTT_RECONNECT_S)
            device.commands.update(commands)
            device.connect()
            resources.callback(device.close)

        # --- Sensor ---
        sensor = DhtReader(pi, projectconfig.SENSOR_INPUT_PIN, projectconfig.SENSOR_OUTPUT_PIN,
                           read_interval=args.interval,
                           on_measurement=on_measurements_read, on_error=on_read_error,
                           glitch_us=projectconfig.SENSOR_GLITCH_US)
        resources.callback(sensor.close)
        await sensor.start()
        resources.push_async_callback(sensor.stop)

        tasks = []
        if device is not None:
            tasks.append(asyncio.create_task(repeat(functools.partial(publish, device),
                                                    projectconfig.PUBLISH_INTERVAL_MS / 1000, stop_event)))

        stop_waiter = asyncio.create_task(stop_event.wait())
        done, _ = await asyncio.wait({stop_waiter, sensor.task}, return_when=asyncio.FIRST_COMPLETED)
        if sensor.task in done:
            stop_waiter.cancel()
            logger.error("Sensor schedule stopped: %r", sensor.task.exception())
            stop_event.set()

        logger.info("Terminating...")
        try:
            await asyncio.gather(*tasks)
        except asyncio.CancelledError:
            logger.info("Tasks cancelled")


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="DHT11 room monitor for the Raspberry Pi")
    parser.add_argument("--host", default=projectconfig.PIGPIO_HOST, help="pigpiod host")
    parser.add_argument("--port", type=int, default=projectconfig.PIGPIO_PORT, help="pigpiod port")
    parser.add_argument("--interval", type=int, default=projectconfig.SENSOR_READ_INTERVAL_MS,
                        help="sensor read interval in ms")
    parser.add_argument("--no-mqtt", action="store_true", help="don't connect to the MQTT broker")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    return parser.parse_args(argv)


def cli(argv=None):
    args = parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO, format=projectconfig.LOG_FORMAT)
    try:
        asyncio.run(run(args))
    except GpioUnavailable as e:
        logger.error("%s", e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(cli())
