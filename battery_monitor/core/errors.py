"""Exception types raised to callers of the monitoring core."""


class BatteryMonitorError(Exception):
    """Base class for errors surfaced by battery_monitor."""


class SchedulerError(BatteryMonitorError):
    pass


class SchedulerAlreadyRunningError(SchedulerError):
    def __init__(self):
        super().__init__("Monitor already running")


class SchedulerStoppedError(SchedulerError):
    def __init__(self):
        super().__init__("Monitor has been stopped; create a new scheduler to restart")


class NotifierError(BatteryMonitorError):
    """The external notifier could not deliver a notification."""


class ConfigError(BatteryMonitorError):
    """Invalid configuration value."""
