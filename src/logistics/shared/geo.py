"""GeoPoint value object shared by places, riders, orders and scans."""

from protean.fields import Float, String

from logistics.domain import logistics


@logistics.value_object
class GeoPoint:
    """A WGS84 coordinate with an optional human-readable address."""

    latitude: Float(required=True, min_value=-90.0, max_value=90.0)
    longitude: Float(required=True, min_value=-180.0, max_value=180.0)
    address: String(max_length=500)


def point_or_none(latitude: float | None, longitude: float | None, address: str | None = None):
    """Build a GeoPoint when both coordinates are present."""
    if latitude is None or longitude is None:
        return None
    return GeoPoint(latitude=latitude, longitude=longitude, address=address)


def as_pair(point) -> tuple[float, float] | None:
    if point is None or point.latitude is None or point.longitude is None:
        return None
    return (point.latitude, point.longitude)
