"""
Idempotent setup helpers.

Tests must be re-runnable against a server holding residual state from an
earlier failed run, so each helper treats "already in the desired end state"
as success. Only the (operation, code) pairs in BenignCodes are tolerated;
every other server error propagates unchanged.
"""

import logging
from typing import Any

from pymongo.asynchronous.collection import AsyncCollection
from pymongo.asynchronous.database import AsyncDatabase
from pymongo.errors import OperationFailure

from .codes import BenignCodes
from .version import ServerVersion

# Server limit on database name length
MAX_DB_NAME_LEN = 63

# First server release accepting createUser.mechanisms
MECHANISMS_MIN_VERSION = ServerVersion(4, 0, 0)


def is_benign(error: OperationFailure, code: int) -> bool:
    """Check whether a command error carries the tolerated code."""
    return error.code == code


def get_db_name(description: str) -> str:
    """
    Build a database name from a test description.

    "$" becomes "%" and spaces become "_"; the result is cut to the server's
    63 character limit.

    Example:
        >>> get_db_name("find one $ where")
        'find_one_%_where'
    """
    return description.replace("$", "%").replace(" ", "_")[:MAX_DB_NAME_LEN]


def build_create_user_command(
    user: str,
    pwd: str | None,
    roles: list[Any],
    mechanisms: list[str] | None,
    version: ServerVersion,
) -> dict[str, Any]:
    """
    Build a createUser command for the given server version.

    Servers before 4.0 reject the ``mechanisms`` field, so it is only added
    on 4.0+ and only when at least one mechanism was requested.
    """
    cmd: dict[str, Any] = {"createUser": user}
    if pwd is not None:
        cmd["pwd"] = pwd
    cmd["roles"] = list(roles)
    if mechanisms and version >= MECHANISMS_MIN_VERSION:
        cmd["mechanisms"] = list(mechanisms)
    return cmd


async def drop_collection(
    coll: AsyncCollection,
    codes: BenignCodes | None = None,
    lg: Any = None,
) -> None:
    """
    Drop a collection, treating "namespace not found" as success.

    Args:
        coll: Collection to drop
        codes: Tolerated error codes (defaults to the server's standard codes)
        lg: Logger (defaults to the module logger)

    Raises:
        OperationFailure: For any error other than namespace not found
    """
    codes = codes or BenignCodes()
    lg = lg or logging.getLogger(__name__)

    try:
        await coll.drop()
    except OperationFailure as e:
        if not is_benign(e, codes.namespace_not_found):
            raise
        lg.debug(
            "collection already absent",
            extra={"ns": coll.full_name, "code": e.code},
        )
        return
    lg.debug("dropped collection", extra={"ns": coll.full_name})


async def drop_user(
    db: AsyncDatabase,
    user: str,
    codes: BenignCodes | None = None,
    lg: Any = None,
) -> None:
    """
    Drop a user, treating "user not found" as success.

    Raises:
        OperationFailure: For any error other than user not found
    """
    codes = codes or BenignCodes()
    lg = lg or logging.getLogger(__name__)

    try:
        await db.command({"dropUser": user})
    except OperationFailure as e:
        if not is_benign(e, codes.user_not_found):
            raise
        lg.debug(
            "user already absent",
            extra={"user": user, "db": db.name, "code": e.code},
        )
        return
    lg.debug("dropped user", extra={"user": user, "db": db.name})


async def create_fresh_collection(
    db: AsyncDatabase,
    coll_name: str,
    codes: BenignCodes | None = None,
    lg: Any = None,
    **options: Any,
) -> AsyncCollection:
    """
    Guarantee an empty collection: drop it if present, then create it.

    Args:
        db: Database holding the collection
        coll_name: Collection name
        codes: Tolerated error codes for the drop
        lg: Logger
        **options: Options passed to create_collection (e.g. capped=True)

    Returns:
        The newly created collection
    """
    await drop_collection(db[coll_name], codes, lg)
    return await db.create_collection(coll_name, **options)
