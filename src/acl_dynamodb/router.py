"""
acl_dynamodb.router — Maps logical buckets onto physical tables and keys.

Two layouts are supported:

    per-bucket   table: {prefix}{bucket}      key: {"key": <encoded key>}
    shared       table: {prefix}resources     key: {"key": <encoded key>, "_bucketname": bucket}

Every read, write and delete path builds its table name and key through
TableRouter so the layouts cannot drift apart.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

from acl_dynamodb.exceptions import InvalidBucketError

KEY_ATTRIBUTE = "key"
BUCKET_ATTRIBUTE = "_bucketname"
LEGACY_ID_ATTRIBUTE = "_id"
SHARED_TABLE_NAME = "resources"

# Attribute names that describe the row itself, never members of its value set.
RESERVED_ATTRIBUTES: frozenset[str] = frozenset(
    {KEY_ATTRIBUTE, BUCKET_ATTRIBUTE, LEGACY_ID_ATTRIBUTE}
)

_TABLE_NAME_RE = re.compile(r"^[A-Za-z0-9_.-]{3,255}$")


@dataclass(frozen=True)
class TableRouter:
    prefix: str = ""
    use_single: bool = False

    def table_name(self, bucket: str) -> str:
        """Physical table holding the bucket's rows.

        Raises InvalidBucketError in per-bucket mode when the bucket would
        produce a name DynamoDB rejects.
        """
        name = self.prefix + (SHARED_TABLE_NAME if self.use_single else bucket)
        if not _TABLE_NAME_RE.match(name):
            raise InvalidBucketError(bucket, name)
        return name

    def item_key(self, bucket: str, encoded_key: Any) -> dict[str, Any]:
        # The key attribute is declared as type S, so numeric keys are stored as strings.
        key: dict[str, Any] = {KEY_ATTRIBUTE: str(encoded_key)}
        if self.use_single:
            key[BUCKET_ATTRIBUTE] = bucket
        return key

    def key_schema(self) -> list[dict[str, str]]:
        schema = [{"AttributeName": KEY_ATTRIBUTE, "KeyType": "HASH"}]
        if self.use_single:
            schema.append({"AttributeName": BUCKET_ATTRIBUTE, "KeyType": "RANGE"})
        return schema

    def attribute_definitions(self) -> list[dict[str, str]]:
        definitions = [{"AttributeName": KEY_ATTRIBUTE, "AttributeType": "S"}]
        if self.use_single:
            definitions.append({"AttributeName": BUCKET_ATTRIBUTE, "AttributeType": "S"})
        return definitions
