"""Create the Academy DynamoDB tables and seed one sample tenant.

Usage:
    python scripts/seed_dynamodb.py --endpoint-url http://localhost:4566
"""

from __future__ import annotations

import argparse
from typing import Any

import boto3

from academy.core.protocols import IDocumentStore
from academy.persistence import (
    COLLECTIONS,
    MARKS,
    MARKSHEET_TEMPLATES,
    STUDENTS,
    SUBJECTS,
    DynamoDBDocumentStore,
)

SAMPLE_TENANT = "demo-school"
SAMPLE_CLASS = "CLS_10A"

SAMPLE_STUDENTS: list[dict[str, Any]] = [
    {
        "_id": "65f0a1b2c3d4e5f6a7b8c901",
        "studentId": "STU001",
        "name": "Asha Verma",
        "rollNumber": "1",
        "email": "asha@example.com",
        "phone": "9800000001",
        "fatherName": "Ravi Verma",
        "address": {"village": "Rampur", "district": "Lucknow"},
        "batch": "2025-2026",
    },
    {
        "_id": "65f0a1b2c3d4e5f6a7b8c902",
        "studentId": "STU002",
        "name": "Kabir Singh",
        "rollNumber": "2",
        "email": "kabir@example.com",
        "phone": "9800000002",
        "fatherName": "Harpreet Singh",
        "address": {"village": "Sonpur", "district": "Patna"},
        "batch": "2025-2026",
    },
]

SAMPLE_SUBJECTS: list[dict[str, Any]] = [
    {"subjectId": "SUB_MATH", "name": "Mathematics"},
    {"subjectId": "SUB_SCI", "name": "Science"},
    {"subjectId": "SUB_ENG", "name": "English"},
]

# Each marks document holds one test; ``students`` is keyed by student ``_id``.
SAMPLE_MARKS: list[dict[str, Any]] = [
    {
        "testId": "TEST_MATH_1",
        "subjectId": "SUB_MATH",
        "students": {
            "65f0a1b2c3d4e5f6a7b8c901": {"marks": 42, "maxMarks": 50},
            "65f0a1b2c3d4e5f6a7b8c902": {"marks": 35, "maxMarks": 50},
        },
    },
    {
        "testId": "TEST_MATH_2",
        "subjectId": "SUB_MATH",
        "students": {
            "65f0a1b2c3d4e5f6a7b8c901": {"marks": 45, "maxMarks": 50},
            "65f0a1b2c3d4e5f6a7b8c902": {"marks": 40, "maxMarks": 50},
        },
    },
    {
        "testId": "TEST_SCI_1",
        "subjectId": "SUB_SCI",
        "students": {
            "65f0a1b2c3d4e5f6a7b8c901": {"marks": 88, "maxMarks": 100},
            "65f0a1b2c3d4e5f6a7b8c902": {"marks": 61.5, "maxMarks": 100},
        },
    },
]

SAMPLE_TEMPLATE: dict[str, Any] = {
    "templateId": "TPL_TERM1",
    "templateName": "Term 1 Report",
    "institutionName": "Demo Public School",
    "subtitle": "Annual Examination",
    "subjects": [
        {"id": "SUB_MATH", "name": "Maths", "maxMarks": 100},
        {"id": "t2", "name": "science", "maxMarks": 100},
        {"id": "t3", "name": "English", "maxMarks": 100},
    ],
}


def create_tables(ddb: Any, prefix: str = "academy-", suffix: str = "") -> None:
    """Create one table per collection. Skips tables that already exist."""
    client = ddb.meta.client
    existing = client.list_tables().get("TableNames", [])

    for collection in COLLECTIONS:
        table_name = f"{prefix}{collection}{suffix}"
        if table_name in existing:
            print(f"  Table {table_name} already exists, skipping")
            continue
        client.create_table(
            TableName=table_name,
            KeySchema=[
                {"AttributeName": "PK", "KeyType": "HASH"},
                {"AttributeName": "SK", "KeyType": "RANGE"},
            ],
            AttributeDefinitions=[
                {"AttributeName": "PK", "AttributeType": "S"},
                {"AttributeName": "SK", "AttributeType": "S"},
            ],
            BillingMode="PAY_PER_REQUEST",
        )
        print(f"  Created table {table_name}")


def seed_sample_tenant(store: IDocumentStore, tenant_id: str = SAMPLE_TENANT) -> dict[str, int]:
    """Insert students, subjects, marks and one template for ``tenant_id``."""
    scope = {"managementId": tenant_id, "classId": SAMPLE_CLASS}
    counts: dict[str, int] = {}
    for collection, documents in (
        (STUDENTS, SAMPLE_STUDENTS),
        (SUBJECTS, SAMPLE_SUBJECTS),
        (MARKS, SAMPLE_MARKS),
    ):
        store.insert_many(collection, [{**doc, **scope} for doc in documents])
        counts[collection] = len(documents)
        print(f"  Seeded {len(documents)} {collection}")

    store.insert_one(MARKSHEET_TEMPLATES, {**SAMPLE_TEMPLATE, "managementId": tenant_id})
    counts[MARKSHEET_TEMPLATES] = 1
    print(f"  Seeded template {SAMPLE_TEMPLATE['templateId']}")
    return counts


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed DynamoDB tables for Academy")
    parser.add_argument("--endpoint-url", default=None, help="DynamoDB endpoint (e.g. http://localhost:4566)")
    parser.add_argument("--table-prefix", default="academy-", help="Table name prefix")
    parser.add_argument("--table-suffix", default="", help="Table name suffix (e.g. -dev)")
    parser.add_argument("--region", default="us-east-1", help="AWS region")
    parser.add_argument("--tenant", default=SAMPLE_TENANT, help="managementId of the sample tenant")
    args = parser.parse_args()

    kwargs: dict[str, Any] = {"region_name": args.region}
    if args.endpoint_url:
        kwargs["endpoint_url"] = args.endpoint_url

    ddb = boto3.resource("dynamodb", **kwargs)

    print("Creating tables...")
    create_tables(ddb, prefix=args.table_prefix, suffix=args.table_suffix)

    print("Seeding data...")
    store = DynamoDBDocumentStore(
        table_prefix=args.table_prefix,
        table_suffix=args.table_suffix,
        region=args.region,
        endpoint_url=args.endpoint_url,
    )
    seed_sample_tenant(store, args.tenant)

    print("Done!")


if __name__ == "__main__":
    main()
