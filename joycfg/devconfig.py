"""In-memory model of the joystick device configuration."""

from __future__ import annotations

import copy as _copy
from dataclasses import dataclass, field

PIN_COUNT = 30
SHIFT_BUTTON_COUNT = 5
CURVE_POINT_COUNT = 11
A2B_POINT_COUNT = 13
LED_PWM_COUNT = 4
DEVICE_NAME_SIZE = 26

MAX_BUTTONS_NUM = 128
MAX_AXIS_NUM = 8
MAX_SHIFT_REG_NUM = 4
MAX_ENCODERS_NUM = 16
MAX_LEDS_NUM = 24


@dataclass
class ButtonConfig:
    """Settings for one logical button."""

    physical_num: int = 0
    type: int = 0
    shift_modificator: int = 0
    is_inverted: int = 0
    is_disabled: int = 0
    delay_timer: int = 0
    press_timer: int = 0


@dataclass
class AxisConfig:
    """Calibration, source and curve settings for one axis."""

    calib_min: int = 0
    calib_center: int = 0
    calib_max: int = 0
    is_centered: int = 0
    out_enabled: int = 0
    inverted: int = 0
    function: int = 0
    filter: int = 0
    resolution: int = 0
    channel: int = 0
    deadband_size: int = 0
    is_dynamic_deadband: int = 0
    source_main: int = 0
    source_secondary: int = 0
    offset_angle: int = 0
    button1: int = 0
    button2: int = 0
    button3: int = 0
    divider: int = 0
    i2c_address: int = 0
    button1_type: int = 0
    button2_type: int = 0
    button3_type: int = 0
    prescaler: int = 0
    curve_shape: list[int] = field(default_factory=lambda: [0] * CURVE_POINT_COUNT)


@dataclass
class AxisToButtons:
    """Split of an axis range into virtual buttons."""

    buttons_cnt: int = 0
    points: list[int] = field(default_factory=lambda: [0] * A2B_POINT_COUNT)


@dataclass
class ShiftRegister:
    """One chained shift register."""

    type: int = 0
    button_cnt: int = 0


@dataclass
class LedPwmConfig:
    """PWM output settings for one LED pin."""

    duty_cycle: int = 0
    is_axis: bool = False
    axis_num: int = 0


@dataclass
class LedConfig:
    """One LED bound to an input."""

    input_num: int = 0
    type: int = 0


@dataclass
class DeviceConfig:
    """Complete device configuration, zeroed by default."""

    firmware_version: int = 0
    device_name: str = ""
    vid: int = 0
    pid: int = 0
    exchange_period_ms: int = 0
    pins: list[int] = field(default_factory=lambda: [0] * PIN_COUNT)
    shift_buttons: list[int] = field(default_factory=lambda: [0] * SHIFT_BUTTON_COUNT)
    button_timer1_ms: int = 0
    button_timer2_ms: int = 0
    button_timer3_ms: int = 0
    button_debounce_ms: int = 0
    encoder_press_time_ms: int = 0
    buttons: list[ButtonConfig] = field(
        default_factory=lambda: [ButtonConfig() for _ in range(MAX_BUTTONS_NUM)]
    )
    axis_config: list[AxisConfig] = field(
        default_factory=lambda: [AxisConfig() for _ in range(MAX_AXIS_NUM)]
    )
    axes_to_buttons: list[AxisToButtons] = field(
        default_factory=lambda: [AxisToButtons() for _ in range(MAX_AXIS_NUM)]
    )
    shift_registers: list[ShiftRegister] = field(
        default_factory=lambda: [ShiftRegister() for _ in range(MAX_SHIFT_REG_NUM)]
    )
    encoders: list[int] = field(default_factory=lambda: [0] * MAX_ENCODERS_NUM)
    led_pwm_config: list[LedPwmConfig] = field(
        default_factory=lambda: [LedPwmConfig() for _ in range(LED_PWM_COUNT)]
    )
    leds: list[LedConfig] = field(
        default_factory=lambda: [LedConfig() for _ in range(MAX_LEDS_NUM)]
    )

    def copy(self) -> "DeviceConfig":
        """Return an independent deep copy."""
        return _copy.deepcopy(self)