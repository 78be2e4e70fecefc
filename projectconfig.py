#Here you can adjust specific configs for your project.

# --- pigpiod --- leave as None to use the local daemon (or the PIGPIO_ADDR / PIGPIO_PORT environment variables)
PIGPIO_HOST = None
PIGPIO_PORT = None

# --- LED and button --- the button toggles the LED, it can also be switched over MQTT
LED_PIN = 8
BUTTON_PIN = 7
BUTTON_DEBOUNCE_MS = 20

# --- DHT11 sensor --- input pin reads the data line, output pin drives the wake pulse
SENSOR_INPUT_PIN = 13
SENSOR_OUTPUT_PIN = 19
SENSOR_READ_INTERVAL_MS = 2000
SENSOR_GLITCH_US = 0  # 0 disables the pigpio glitch filter on the data line

# --- schedules ---
PUBLISH_INTERVAL_MS = 10000

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
