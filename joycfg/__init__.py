"""Configuration model, HID discovery, config transfer and firmware flashing for joystick controllers."""

__version__ = "0.1.0"