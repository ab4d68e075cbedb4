"""
service/filters.py

In-memory filtering and sorting of a loaded service catalog.
All filters combine with AND; unset filters match everything.
"""

from collections.abc import Iterable

from servicewala.service.schemas import ServiceFilters, ServiceRead, SortOption


def parse_price_range(value: str) -> tuple[float, float | None]:
    """
    Parses "min-max" (inclusive) or "min" (no upper bound).

    Raises:
        ValueError: when a bound is not a number or min exceeds max.
    """
    parts = value.strip().split("-")
    if len(parts) > 2 or not parts[0].strip():
        raise ValueError(f"Invalid price range '{value}'")
    try:
        low = float(parts[0])
        high = float(parts[1]) if len(parts) == 2 and parts[1].strip() else None
    except ValueError:
        raise ValueError(f"Invalid price range '{value}'") from None
    if high is not None and low > high:
        raise ValueError(f"Invalid price range '{value}': minimum exceeds maximum")
    return low, high


def _matches_query(service: ServiceRead, query: str) -> bool:
    needle = query.lower()
    haystacks = [service.title, service.description, service.category, *(service.tags or [])]
    return any(needle in text.lower() for text in haystacks if text)


def _matches_location(service: ServiceRead, location: str) -> bool:
    needle = location.lower()
    return any(
        needle in text.lower() for text in (service.location, service.city, service.state) if text
    )


def apply_filters(services: Iterable[ServiceRead], filters: ServiceFilters) -> list[ServiceRead]:
    """Returns the services that satisfy every set filter, in input order."""
    price_bounds = parse_price_range(filters.price_range) if filters.price_range else None

    result = []
    for service in services:
        if filters.query and not _matches_query(service, filters.query):
            continue
        if filters.category and service.category != filters.category:
            continue
        if filters.location and not _matches_location(service, filters.location):
            continue
        if filters.city and service.city != filters.city:
            continue
        if filters.state and service.state != filters.state:
            continue
        if filters.min_rating is not None and service.rating < filters.min_rating:
            continue
        if price_bounds:
            low, high = price_bounds
            if service.price < low or (high is not None and service.price > high):
                continue
        result.append(service)
    return result


def sort_services(services: Iterable[ServiceRead], sort: SortOption | None) -> list[ServiceRead]:
    """Stable sort; ties keep their input order."""
    items = list(services)
    if sort is None:
        return items
    if sort == SortOption.RATING:
        return sorted(items, key=lambda s: s.rating, reverse=True)
    if sort == SortOption.PRICE_LOW:
        return sorted(items, key=lambda s: s.price)
    if sort == SortOption.PRICE_HIGH:
        return sorted(items, key=lambda s: s.price, reverse=True)
    return sorted(items, key=lambda s: s.review_count, reverse=True)
