"""Transport-level I/O: streaming events and wire codecs."""
