from abc import ABC, abstractmethod


class LoggingPort(ABC):
    """Logger used by the workflow components.

    The module-level `postcast.core.settings.logger` implements this port and
    can be re-targeted at start-up, so managers never touch logging handlers.
    """

    @abstractmethod
    def debug(self, msg: str, *args) -> None: ...

    @abstractmethod
    def info(self, msg: str, *args) -> None: ...

    @abstractmethod
    def warning(self, msg: str, *args) -> None: ...

    @abstractmethod
    def error(self, msg: str, *args) -> None: ...
