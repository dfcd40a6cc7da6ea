"""
Build configuration for the vSphere driver
"""

from dataclasses import dataclass, field, fields
from typing import Dict, Any, Optional, List

import yaml

from .exceptions import ConfigurationError


def _normalize(data: Dict[str, Any], cls) -> Dict[str, Any]:
    """Drop unknown keys and turn empty strings into None"""
    known = {f.name for f in fields(cls)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigurationError(
            f"Unknown {cls.__name__} keys: {', '.join(unknown)}",
            details={'unknown': unknown}
        )
    return {k: (None if v == "" else v) for k, v in data.items()}


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _string_errors(config, names) -> List[str]:
    return [f"{name} must be a string, got {getattr(config, name)!r}" for name in names
            if getattr(config, name) is not None and not isinstance(getattr(config, name), str)]


@dataclass(frozen=True)
class ConnectConfig:
    """vCenter endpoint and credentials"""
    vcenter_server: str
    username: str
    password: str
    datacenter: Optional[str] = None  # None: the only datacenter
    insecure_connection: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ConnectConfig':
        return cls(**_normalize(data, cls))

    def errors(self) -> List[str]:
        errs = _string_errors(self, ('vcenter_server', 'username', 'password', 'datacenter'))
        if not self.vcenter_server:
            errs.append("vcenter_server is required")
        if not self.username:
            errs.append("username is required")
        if not self.password:
            errs.append("password is required")
        return errs


@dataclass(frozen=True)
class CloneConfig:
    """Clone placement for the new VM"""
    template: str
    vm_name: str
    folder: Optional[str] = None
    host: Optional[str] = None
    resource_pool: Optional[str] = None
    datastore: Optional[str] = None
    linked_clone: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CloneConfig':
        return cls(**_normalize(data, cls))

    def errors(self) -> List[str]:
        errs = _string_errors(self, ('template', 'vm_name', 'folder', 'host',
                                     'resource_pool', 'datastore'))
        if not self.template:
            errs.append("template is required")
        if not self.vm_name:
            errs.append("vm_name is required")
        return errs


@dataclass(frozen=True)
class HardwareConfig:
    """
    Hardware settings applied with a single reconfigure call.

    Fields left as None are not sent, so the VM keeps whatever the template
    had. CPU values are MHz, RAM values are MB. A cpu_limit of -1 means
    unlimited.
    """
    cpus: Optional[int] = None
    ram: Optional[int] = None
    cpu_reservation: Optional[int] = None
    cpu_limit: Optional[int] = None
    ram_reservation: Optional[int] = None
    ram_reserve_all: Optional[bool] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'HardwareConfig':
        return cls(**_normalize(data, cls))

    def is_empty(self) -> bool:
        return all(getattr(self, f.name) is None for f in fields(self))

    def errors(self) -> List[str]:
        errs = []
        for name in ('cpus', 'ram', 'cpu_reservation', 'cpu_limit', 'ram_reservation'):
            value = getattr(self, name)
            if value is not None and not _is_int(value):
                errs.append(f"{name} must be an integer, got {value!r}")
        if self.ram_reserve_all is not None and not isinstance(self.ram_reserve_all, bool):
            errs.append(f"ram_reserve_all must be a boolean, got {self.ram_reserve_all!r}")
        if errs:
            return errs

        for name in ('cpus', 'ram', 'cpu_reservation', 'ram_reservation'):
            value = getattr(self, name)
            if value is not None and value < 0:
                errs.append(f"{name} must not be negative")
        if self.cpus == 0:
            errs.append("cpus must be at least 1")
        if self.ram == 0:
            errs.append("ram must be at least 1 MB")
        if self.cpu_limit is not None:
            if self.cpu_limit < -1:
                errs.append("cpu_limit must be -1 (unlimited) or a positive value")
            elif (self.cpu_limit != -1 and self.cpu_reservation is not None
                    and self.cpu_limit < self.cpu_reservation):
                errs.append("cpu_limit must not be lower than cpu_reservation")
        if self.ram_reserve_all and self.ram_reservation is not None:
            errs.append("ram_reservation cannot be combined with ram_reserve_all")
        return errs


@dataclass(frozen=True)
class ShutdownConfig:
    """Guest shutdown wait"""
    timeout: float = 300.0
    poll_interval: float = 1.0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ShutdownConfig':
        return cls(**_normalize(data, cls))

    def errors(self) -> List[str]:
        errs = []
        for name in ('timeout', 'poll_interval'):
            value = getattr(self, name)
            if not _is_number(value):
                errs.append(f"shutdown {name} must be a number of seconds, got {value!r}")
            elif value <= 0:
                errs.append(f"shutdown {name} must be positive")
        return errs


@dataclass(frozen=True)
class BuildConfig:
    """All sections needed for one template build"""
    connect: ConnectConfig
    clone: CloneConfig
    hardware: HardwareConfig = field(default_factory=HardwareConfig)
    shutdown: ShutdownConfig = field(default_factory=ShutdownConfig)
    create_snapshot: bool = False
    convert_to_template: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'BuildConfig':
        if not isinstance(data, dict):
            raise ConfigurationError("Build configuration must be a mapping")
        for section in ('connect', 'clone'):
            if not isinstance(data.get(section), dict):
                raise ConfigurationError(f"Missing '{section}' section")

        extra = sorted(set(data) - {'connect', 'clone', 'hardware', 'shutdown',
                                    'create_snapshot', 'convert_to_template'})
        if extra:
            raise ConfigurationError(f"Unknown configuration sections: {', '.join(extra)}",
                                     details={'unknown': extra})

        try:
            return cls(
                connect=ConnectConfig.from_dict(data['connect']),
                clone=CloneConfig.from_dict(data['clone']),
                hardware=HardwareConfig.from_dict(data.get('hardware') or {}),
                shutdown=ShutdownConfig.from_dict(data.get('shutdown') or {}),
                create_snapshot=bool(data.get('create_snapshot', False)),
                convert_to_template=bool(data.get('convert_to_template', False)),
            )
        except TypeError as e:
            # missing required dataclass fields
            raise ConfigurationError(f"Invalid build configuration: {e}") from e

    def validate(self) -> None:
        """Raise ConfigurationError listing every problem found"""
        errs = (self.connect.errors() + self.clone.errors()
                + self.hardware.errors() + self.shutdown.errors())
        if errs:
            raise ConfigurationError(
                "Invalid build configuration: " + "; ".join(errs),
                details={'errors': errs}
            )


def load_build_config(path: str, validate: bool = True) -> BuildConfig:
    """
    Load a YAML build configuration file.

    Pass validate=False to apply overrides (e.g. a password from the
    environment) before calling BuildConfig.validate() yourself.
    """
    try:
        with open(path, 'r') as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Failed to read build configuration {path}: {e}") from e

    config = BuildConfig.from_dict(data)
    if validate:
        config.validate()
    return config
