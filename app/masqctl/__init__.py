"""masqctl - Effective configuration engine for dnsmasq.

Resolves the configuration a running dnsmasq daemon actually uses from its
include graph, tracks which file set every value, and rewrites a single
managed file safely.
"""

__version__ = "0.1.0"
