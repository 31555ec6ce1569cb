"""Core data models used across the catalog, matchers, and discovery engines."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, IntFlag


class Transport(IntFlag):
    NONE = 0
    SERIAL = 1 << 0
    USB = 1 << 1
    USB_HID = 1 << 2
    BLUETOOTH_CLASSIC = 1 << 4
    BLE = 1 << 5
    USB_MASS_STORAGE = 1 << 6


class Family(Enum):
    """Protocol families; products in one family share a download protocol."""

    NULL = "null"
    SUUNTO_SOLUTION = "suunto_solution"
    SUUNTO_EON = "suunto_eon"
    SUUNTO_VYPER = "suunto_vyper"
    SUUNTO_VYPER2 = "suunto_vyper2"
    SUUNTO_D9 = "suunto_d9"
    SUUNTO_EONSTEEL = "suunto_eonsteel"
    REEFNET_SENSUS = "reefnet_sensus"
    REEFNET_SENSUSPRO = "reefnet_sensuspro"
    REEFNET_SENSUSULTRA = "reefnet_sensusultra"
    UWATEC_ALADIN = "uwatec_aladin"
    UWATEC_MEMOMOUSE = "uwatec_memomouse"
    UWATEC_SMART = "uwatec_smart"
    UWATEC_MERIDIAN = "uwatec_meridian"
    OCEANIC_VTPRO = "oceanic_vtpro"
    OCEANIC_VEO250 = "oceanic_veo250"
    OCEANIC_ATOM2 = "oceanic_atom2"
    PELAGIC_I330R = "pelagic_i330r"
    MARES_NEMO = "mares_nemo"
    MARES_PUCK = "mares_puck"
    MARES_DARWIN = "mares_darwin"
    MARES_ICONHD = "mares_iconhd"
    MARES_GENIUS = "mares_genius"
    HW_OSTC = "hw_ostc"
    HW_FROG = "hw_frog"
    HW_OSTC3 = "hw_ostc3"
    CRESSI_EDY = "cressi_edy"
    CRESSI_LEONARDO = "cressi_leonardo"
    CRESSI_GOA = "cressi_goa"
    ZEAGLE_N2ITION3 = "zeagle_n2ition3"
    ATOMICS_COBALT = "atomics_cobalt"
    SHEARWATER_PREDATOR = "shearwater_predator"
    SHEARWATER_PETREL = "shearwater_petrel"
    SHEARWATER_PERDIX = "shearwater_perdix"
    DIVERITE_NITEKQ = "diverite_nitekq"
    CITIZEN_AQUALAND = "citizen_aqualand"
    DIVESOFT_FREEDOM = "divesoft_freedom"
    DEEPBLU_COSMIQ = "deepblu_cosmiq"
    OCEANS_S1 = "oceans_s1"
    MCLEAN_EXTREME = "mclean_extreme"
    LIQUIVISION_LYNX = "liquivision_lynx"
    SPORASUB_SP2 = "sporasub_sp2"
    DEEPSIX_EXCURSION = "deepsix_excursion"
    SEAC_SCREEN = "seac_screen"
    RATIO_IFLY = "ratio_ifly"
    RATIO_IX3M2 = "ratio_ix3m2"
    GARMIN = "garmin"
    TECDIVING_DIVECOMPUTEREU = "tecdiving_divecomputereu"
    SCUBAPRO_G2 = "scubapro_g2"


@dataclass(frozen=True)
class DeviceDescriptor:
    vendor: str
    product: str
    model: int
    family: Family
    transports: Transport

    @property
    def key(self) -> str:
        """Case-insensitive identity used for catalog lookups."""
        return (self.vendor + self.product).lower()


@dataclass(frozen=True)
class BluetoothAdvertisement:
    """A single platform advertisement/sighting for a Bluetooth address."""

    address: str
    name: str | None = None
    rssi: int | None = None
    service_ids: tuple[str, ...] | None = None


@dataclass(frozen=True)
class DiscoveredDevice:
    address: str
    name: str | None = None
    rssi: int | None = None
    is_ble: bool = True
    service_ids: tuple[str, ...] | None = None
    vendor: str | None = None
    product: str | None = None
    descriptor: DeviceDescriptor | None = None

    @property
    def identified(self) -> bool:
        return self.vendor is not None


class UsbClassification(Enum):
    SERIAL_ADAPTER = "serial_adapter"
    USB_HID = "usb_hid"
    USB_DIRECT = "usb_direct"
    UNIDENTIFIED = "unidentified"


@dataclass(frozen=True)
class UsbDeviceInfo:
    """Raw USB enumeration result as supplied by the platform."""

    vendor_id: int
    product_id: int
    path: str | None = None
    serial_number: str | None = None
    manufacturer: str | None = None
    product_name: str | None = None


@dataclass(frozen=True)
class UsbIdentity:
    vendor_id: int
    product_id: int
    classification: UsbClassification
    vendor: str | None = None
    product: str | None = None
    descriptor: DeviceDescriptor | None = None
    chip: str | None = None

    @property
    def identified(self) -> bool:
        return self.classification is not UsbClassification.UNIDENTIFIED


@dataclass(frozen=True)
class DiscoveredUSBDevice:
    info: UsbDeviceInfo
    classification: UsbClassification
    vendor: str | None = None
    product: str | None = None
    descriptor: DeviceDescriptor | None = None
    chip: str | None = None

    @property
    def vendor_id(self) -> int:
        return self.info.vendor_id

    @property
    def product_id(self) -> int:
        return self.info.product_id

    @property
    def is_serial_adapter(self) -> bool:
        return self.classification is UsbClassification.SERIAL_ADAPTER

    @property
    def is_hid(self) -> bool:
        return self.classification is UsbClassification.USB_HID


@dataclass(frozen=True)
class SerialPortInfo:
    path: str
    vendor_id: int | None = None
    product_id: int | None = None
    serial_number: str | None = None
    description: str | None = None


@dataclass(frozen=True)
class NameMatch:
    vendor: str
    product: str | None = None


@dataclass(frozen=True)
class DeviceMatch:
    vendor: str
    product: str | None = None
    descriptor: DeviceDescriptor | None = None
