"""Header chain and sending provider analysis."""

from .chain import RelayHop, describe_hop, extract_chain
from .esp import ESP_RULES, classify

__all__ = ["ESP_RULES", "RelayHop", "classify", "describe_hop", "extract_chain"]
