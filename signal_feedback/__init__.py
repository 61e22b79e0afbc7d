"""Per-user personalization feedback loop.

Learns topical preferences from decisions on content items and re-ranks
future items with the learned preference, while protecting broad signals
from collateral punishment caused by narrow toxic patterns.
"""

__version__ = "0.1.0"
