import logging
from dataclasses import dataclass
from typing import Optional

import geoip2.database
import geoip2.errors
import maxminddb
from user_agents import parse

logger = logging.getLogger(__name__)

DEFAULT_DEVICE = "desktop"
UNKNOWN = "Unknown"


@dataclass(frozen=True)
class AgentInfo:
    device_type: str = DEFAULT_DEVICE
    os_name: str = UNKNOWN
    browser_name: str = UNKNOWN


@dataclass(frozen=True)
class GeoInfo:
    country: Optional[str] = None
    region: Optional[str] = None
    city: Optional[str] = None


def _family(name: Optional[str]) -> str:
    if not name or name == "Other":
        return UNKNOWN
    return name[:50]


def parse_user_agent(user_agent: Optional[str]) -> AgentInfo:
    if not user_agent:
        return AgentInfo()
    agent = parse(user_agent)
    if agent.is_tablet:
        device_type = "tablet"
    elif agent.is_mobile:
        device_type = "mobile"
    else:
        device_type = DEFAULT_DEVICE
    return AgentInfo(
        device_type=device_type,
        os_name=_family(agent.os.family),
        browser_name=_family(agent.browser.family),
    )


class GeoLocator:
    """City lookups against a MaxMind database. Every miss is an empty GeoInfo."""

    def __init__(self, reader=None):
        self.reader = reader

    @classmethod
    def from_path(cls, path: Optional[str]) -> "GeoLocator":
        if not path:
            logger.info("GEOIP_DATABASE not set, clicks will be recorded without geo data")
            return cls()
        try:
            return cls(geoip2.database.Reader(path))
        except (OSError, ValueError) as exc:
            logger.warning("Could not open GeoIP database %s: %r", path, exc)
            return cls()

    def lookup(self, ip: Optional[str]) -> GeoInfo:
        if self.reader is None or not ip:
            return GeoInfo()
        try:
            response = self.reader.city(ip)
        except (geoip2.errors.AddressNotFoundError, ValueError):
            return GeoInfo()
        except (geoip2.errors.GeoIP2Error, maxminddb.InvalidDatabaseError, TypeError) as exc:
            logger.warning("GeoIP lookup of %s failed: %r", ip, exc)
            return GeoInfo()
        city = response.city.name
        return GeoInfo(
            country=response.country.iso_code,
            region=response.subdivisions.most_specific.iso_code,
            city=city[:50] if city else None,
        )

    def close(self):
        if self.reader is not None:
            self.reader.close()
