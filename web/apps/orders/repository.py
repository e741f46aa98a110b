"""Django ORM adapter for the orders persistence port.

``DjangoStore`` maps collection names onto ORM models and returns plain
dictionaries so the domain layer is not coupled to Django ORM types.
Every ORM failure is translated into the domain ``StoreError`` or
``NotFoundError``.
"""

from django.core.exceptions import FieldDoesNotExist, FieldError, ValidationError as DjangoValidationError
from django.db import DatabaseError, transaction

from .domain import ORDERS, PAYMENT_RECORDS, NotFoundError, StoreError, StorePort
from .models import OrderModel, PaymentRecordModel

ORM_ERRORS = (DatabaseError, FieldDoesNotExist, FieldError, DjangoValidationError, TypeError, ValueError)


def to_row(obj) -> dict:
    """Return the concrete column values of a model instance."""
    return {f.attname: getattr(obj, f.attname) for f in obj._meta.concrete_fields}


class DjangoStore(StorePort):
    """Store that persists rows through the Django ORM."""

    MODELS = {
        ORDERS: OrderModel,
        PAYMENT_RECORDS: PaymentRecordModel,
    }

    def _model(self, collection: str):
        try:
            return self.MODELS[collection]
        except KeyError:
            raise StoreError(f'relation "{collection}" does not exist')

    def insert(self, collection: str, row: dict) -> dict:
        """Persist a new row and return it including its primary key.

        Raises:
            StoreError: On unknown columns, invalid values or database
                errors.
        """
        model = self._model(collection)
        try:
            with transaction.atomic():
                obj = model.objects.create(**row)
                obj.refresh_from_db()
        except ORM_ERRORS as e:
            raise StoreError(f"Could not insert into {collection}: {e}")
        return to_row(obj)

    def update(self, collection: str, filters: dict, patch: dict) -> dict:
        """Update the single row matching ``filters`` and return it reloaded.

        Raises:
            NotFoundError: If no row matches.
            StoreError: If several rows match or the write fails.
        """
        model = self._model(collection)
        try:
            with transaction.atomic():
                pks = list(model.objects.filter(**filters).values_list("pk", flat=True)[:2])
                if not pks:
                    raise NotFoundError(f"No {collection} row matches {filters}")
                if len(pks) > 1:
                    raise StoreError(f"More than one {collection} row matches {filters}")
                model.objects.filter(pk=pks[0]).update(**patch)
                obj = model.objects.get(pk=pks[0])
        except ORM_ERRORS as e:
            raise StoreError(f"Could not update {collection}: {e}")
        return to_row(obj)

    def select_one(self, collection: str, filters: dict) -> dict:
        model = self._model(collection)
        try:
            obj = model.objects.get(**filters)
        except model.DoesNotExist:
            raise NotFoundError(f"No {collection} row matches {filters}")
        except model.MultipleObjectsReturned:
            raise StoreError(f"More than one {collection} row matches {filters}")
        except ORM_ERRORS as e:
            raise StoreError(f"Could not read {collection}: {e}")
        return to_row(obj)

    def select_many(self, collection, filters=None, order_by="-created_at", limit=None):
        model = self._model(collection)
        try:
            qs = model.objects.filter(**(filters or {}))
            if order_by:
                qs = qs.order_by(order_by, "-pk" if order_by.startswith("-") else "pk")
            if limit is not None:
                qs = qs[:limit]
            return [to_row(obj) for obj in qs]
        except ORM_ERRORS as e:
            raise StoreError(f"Could not read {collection}: {e}")
