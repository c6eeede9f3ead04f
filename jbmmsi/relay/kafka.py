'''
Mirror the relayed events onto Kafka for consumers outside the website.
One topic per collection; the value uses the same CRUD envelope as the rest of our Kafka traffic.
This sink runs on the relay worker, so send() must never wait long for a broker.
'''

import logging

from kafka import KafkaProducer
from kafka.errors import KafkaError, KafkaTimeoutError

from jbmmsi.dal.utils import JSONEncoder

logger = logging.getLogger(__name__)


class KafkaEventSink(object):
    def __init__(self, producer):
        self.producer = producer

    def __call__(self, event):
        topic = event.entity_kind.collection
        kmsg = event.kafka_value()
        logger.debug("Publishing onto topic %s - %s", topic, kmsg)
        try:
            future = self.producer.send(topic, kmsg)
        except KafkaTimeoutError:
            logger.error("Kafka unavailable; not mirroring %s for %s", event.name, event.entity_id)
            return
        future.add_errback(lambda exc: logger.error("Exception publishing %s for %s to Kafka: %s", event.name, event.entity_id, exc))

    def __repr__(self):
        return "KafkaEventSink"


def build_kafka_sink(config):
    """
    Returns None if Kafka is not configured or cannot be reached; the website works fine without it.
    """
    if config.get("SKIP_KAFKA_CONNECTION") or not config.get("KAFKA_BOOTSTRAP_SERVER"):
        logger.info("Not mirroring change events to Kafka")
        return None
    try:
        producer = KafkaProducer(
            bootstrap_servers=config["KAFKA_BOOTSTRAP_SERVER"].split(","),
            value_serializer=lambda m: JSONEncoder().encode(m).encode('utf-8'),
            max_block_ms=config.get("KAFKA_MAX_BLOCK_MS", 500))
    except KafkaError:
        logger.exception("Cannot connect to Kafka at %s; not mirroring change events", config["KAFKA_BOOTSTRAP_SERVER"])
        return None
    return KafkaEventSink(producer)
