# add your MQTT credentials here
MQTT_CLIENT_ID = "PiHome1"  # commands are received on "<client id>/command"
MQTT_username = "user"
MQTT_password = "password"
MQTT_BROKER = "192.168.10.1"  # or use the hostname of your MQTT broker
MQTT_PORT = 7750
MQTT_RECONNECT_S = 5

# measurements are published as JSON on "<spot>/measurements"
SPOT_NAME = "room"
MQTT_TOPIC_MEASUREMENTS = SPOT_NAME + "/measurements"
