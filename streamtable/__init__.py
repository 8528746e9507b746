"""
streamtable: a Kafka table engine.

Streams records from Kafka topics into a sink in bounded rounds, committing
offsets only after each round has been handed off.
"""
