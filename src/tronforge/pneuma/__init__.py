"""
Pneuma - Codec and transaction layer for tronforge.

Provides the ABI codec, protobuf wire editing, transaction finalization
and the full-node HTTP client.

Uses httpx + eth-keys + eth-hash for transport, signing and hashing; the
ABI and protobuf encodings are implemented here.
"""
