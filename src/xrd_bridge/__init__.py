"""xrd-bridge: SOAP and REST message adapter for X-Road style service exchange."""
