"""Coupon persistence scoped to a store.

Writes that can hit the ``(store_id, code)`` unique constraint run in their
own savepoint so a duplicate code surfaces as ``CouponAlreadyExists`` and
leaves the existing coupon untouched. Partial updates load the row under
``SELECT ... FOR UPDATE``, merge and re-validate the changes, and write the
whole coupon back in the same transaction.
"""

import uuid
from typing import Optional

from django.db import DatabaseError, IntegrityError, transaction
from pydantic import ValidationError as PydanticValidationError

from apps.common.errors import CouponAlreadyExists, CouponDataInvalid, CouponNotFound, PersistenceError

from .models import Coupon
from .schemas import CouponCreateDTO, CouponUpdateDTO

_WRITABLE_FIELDS = list(CouponCreateDTO.model_fields)


class CouponRepository:
    def create(self, store_id: uuid.UUID, data: CouponCreateDTO) -> Coupon:
        try:
            with transaction.atomic():
                return Coupon.objects.create(store_id=store_id, **data.model_dump())
        except IntegrityError as exc:
            raise CouponAlreadyExists(errors=str(exc)) from exc
        except DatabaseError as exc:
            raise PersistenceError(errors=str(exc)) from exc

    def get(self, store_id: uuid.UUID, coupon_id: uuid.UUID) -> Coupon:
        coupon = Coupon.objects.filter(id=coupon_id, store_id=store_id).first()
        if coupon is None:
            raise CouponNotFound()
        return coupon

    def find(self, coupon_id: uuid.UUID, store_id: Optional[uuid.UUID] = None) -> Optional[Coupon]:
        qs = Coupon.objects.filter(id=coupon_id)
        if store_id is not None:
            qs = qs.filter(store_id=store_id)
        return qs.first()

    def list(self, store_id: uuid.UUID, page: int, limit: int, query: Optional[str] = None) -> tuple[int, list[Coupon]]:
        qs = Coupon.objects.filter(store_id=store_id)
        if query:
            qs = qs.filter(code__icontains=query)
        qs = qs.order_by("-created_at", "-id")
        offset = (page - 1) * limit
        return qs.count(), list(qs[offset : offset + limit])

    def update(self, store_id: uuid.UUID, coupon_id: uuid.UUID, changes: CouponUpdateDTO) -> Coupon:
        """Apply a partial update as one load/validate/write-back unit.

        Raises:
            CouponNotFound: No such coupon in the store.
            CouponDataInvalid: The merged coupon is not valid.
            CouponAlreadyExists: The new code is taken in the store.
        """
        try:
            with transaction.atomic():
                coupon = Coupon.objects.select_for_update().filter(id=coupon_id, store_id=store_id).first()
                if coupon is None:
                    raise CouponNotFound()

                current = {name: getattr(coupon, name) for name in _WRITABLE_FIELDS}
                current.update(changes.model_dump(exclude_unset=True))
                try:
                    merged = CouponCreateDTO.model_validate(current)
                except PydanticValidationError as e:
                    raise CouponDataInvalid(errors=e.errors(include_url=False, include_context=False)) from e

                for name, value in merged.model_dump().items():
                    setattr(coupon, name, value)
                coupon.save(update_fields=[*_WRITABLE_FIELDS, "updated_at"])
                return coupon
        except IntegrityError as exc:
            raise CouponAlreadyExists(errors=str(exc)) from exc
        except DatabaseError as exc:
            raise PersistenceError(errors=str(exc)) from exc

    def delete(self, store_id: uuid.UUID, coupon_id: uuid.UUID) -> None:
        deleted, _ = Coupon.objects.filter(id=coupon_id, store_id=store_id).delete()
        if not deleted:
            raise CouponNotFound()
