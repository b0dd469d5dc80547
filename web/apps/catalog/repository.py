"""Catalog lookups used by the order core.

Maps ``ProductModel`` rows (with their sizes prefetched) into immutable
``ProductSnapshot`` values so pricing code is not coupled to the ORM.
"""

import uuid
from typing import Iterable

from .domain import ProductSnapshot, SizeSnapshot
from .models import ProductModel


def _valid_uuids(ids: Iterable[str]) -> list[uuid.UUID]:
    out = []
    for raw in ids:
        try:
            out.append(uuid.UUID(str(raw)))
        except ValueError:
            continue
    return out


def to_snapshot(obj: ProductModel) -> ProductSnapshot:
    return ProductSnapshot(
        id=str(obj.id),
        title=obj.title,
        is_active=obj.is_active,
        base_price=obj.base_price,
        category_id=str(obj.category_id),
        images=tuple(obj.images or ()),
        sizes=tuple(
            SizeSnapshot(id=str(s.id), label=s.label, stock=s.stock, price_override=s.price_override)
            for s in obj.sizes.all()
        ),
    )


class CatalogRepository:
    """Read side of the catalog, keyed by product id."""

    def get_products_by_ids(self, ids: Iterable[str]) -> dict[str, ProductSnapshot]:
        """Fetch products and their sizes in two queries.

        Ids that are not valid UUIDs are treated as unknown rather than
        raising, so callers report them as unavailable products.

        Args:
            ids: Product identifiers requested by the cart.

        Returns:
            dict[str, ProductSnapshot]: Snapshots keyed by product id string.
                Unknown ids are simply absent.
        """
        wanted = _valid_uuids(set(ids))
        if not wanted:
            return {}
        qs = ProductModel.objects.filter(id__in=wanted).prefetch_related("sizes")
        return {str(p.id): to_snapshot(p) for p in qs}
