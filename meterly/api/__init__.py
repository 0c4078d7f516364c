"""HTTP transport for the metering core."""
