# MQTT side of the device: publishes measurements and runs remote commands
# received on "<client id>/command".
import json
import logging

import paho.mqtt.client as mqtt

logger = logging.getLogger(__name__)


class NetDevice:
    def __init__(self, client_id, username, password, broker, port=1883, reconnect_time=5):
        self.client_id = client_id
        self.broker = broker
        self.port = port
        self.command_topic = client_id + "/command"
        self.commands = {}

        self.client = mqtt.Client(mqtt.CallbackAPIVersion.VERSION2, client_id=client_id)
        self.client.username_pw_set(username, password)
        self.client.reconnect_delay_set(min_delay=1, max_delay=reconnect_time)
        self.client.on_connect = self._on_connect
        self.client.on_disconnect = self._on_disconnect
        self.client.on_message = self._on_message

    @property
    def connected(self):
        return self.client.is_connected()

    def connect(self):
        # the network loop keeps reconnecting in the background
        self.client.connect_async(self.broker, self.port)
        self.client.loop_start()

    def _on_connect(self, client, userdata, flags, reason_code, properties):
        if reason_code.is_failure:
            logger.warning("MQTT connection to %s:%d refused: %s", self.broker, self.port, reason_code)
            return
        client.subscribe(self.command_topic)
        logger.info("Connected to %s:%d, subscribed to %s", self.broker, self.port, self.command_topic)

    def _on_disconnect(self, client, userdata, flags, reason_code, properties):
        logger.warning("MQTT disconnected: %s", reason_code)

    def _on_message(self, client, userdata, msg):
        command = msg.payload.decode(errors="replace").strip().lower()
        handler = self.commands.get(command)
        if handler is None:
            logger.info("Ignoring unknown command %r", command)
            return
        try:
            handler(self)
        except Exception:
            logger.exception("MQTT command %r failed", command)

    def publish_measurement(self, topic, measurement):
        return self.client.publish(topic, json.dumps(measurement.as_dict()))

    def close(self):
        self.client.disconnect()
        self.client.loop_stop()
