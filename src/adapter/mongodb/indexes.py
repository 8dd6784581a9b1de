"""MongoDB index creation for the credential store.

An existing index that clashes with the wanted one (same name with other
keys/options, or same keys under another name) is dropped and rebuilt.
"""

from logging import getLogger

from pymongo.errors import OperationFailure

logger = getLogger(__name__)

# IndexOptionsConflict, IndexKeySpecsConflict
_CONFLICT_CODES = {85, 86}


def create_index_safe(collection, keys: list, name: str, **kwargs) -> bool:
    """Create index ``name`` on ``keys``, replacing a conflicting definition."""
    try:
        collection.create_index(keys, name=name, **kwargs)
        return True
    except OperationFailure as e:
        if e.code not in _CONFLICT_CODES:
            raise

    clashing = [
        idx_name
        for idx_name, info in collection.index_information().items()
        if idx_name != '_id_' and (idx_name == name or list(info.get('key', [])) == list(keys))
    ]
    if not clashing:
        logger.error("Index conflict reported but no clashing index found", extra={"index": name})
        return False

    for idx_name in clashing:
        logger.warning("Dropping conflicting index", extra={"index": idx_name})
        collection.drop_index(idx_name)
    collection.create_index(keys, name=name, **kwargs)
    logger.info("Recreated index", extra={"index": name})
    return True


def ensure_all_indexes(db) -> bool:
    """Called at app startup."""
    from adapter.mongodb.user_repository import MongoUserRepository

    return MongoUserRepository(db).ensure_indexes()
