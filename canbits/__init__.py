"""CAN bit-timing calculation for many controllers and a TCP text front end for the broadcast manager."""

__version__ = "0.1.0"