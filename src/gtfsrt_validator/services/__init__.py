"""Static loading, feed decoding, validation and batch processing."""
