from correlator.models.store_record import StoreRecordRow

__all__ = [
    "StoreRecordRow",
]
