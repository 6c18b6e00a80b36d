"""netpulse - TCP reachability monitoring for network device fleets."""

__version__ = "0.1.0"
