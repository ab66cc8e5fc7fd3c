#!/usr/bin/env python3
"""
Delete every product from a running storefront through the admin API.

Orders already placed keep their item snapshots; cart lines that pointed at a
deleted product are left for shoppers to remove.
"""

import argparse
import os
import sys

import requests


def clear_catalog(api_url, admin_token=None):
    headers = {"Authorization": f"Bearer {admin_token}"} if admin_token else {}

    response = requests.get(f"{api_url}/api/products", timeout=10)
    response.raise_for_status()
    products = response.json()
    print(f"Found {len(products)} products")

    deleted = 0
    for product in products:
        response = requests.delete(
            f"{api_url}/api/admin/products/{product['id']}",
            headers=headers,
            timeout=10
        )
        if response.status_code == 200:
            deleted += 1
            print(f"Deleted {product['name']} ({product['id']})")
        elif response.status_code == 404:
            print(f"Already gone: {product['id']}")
        else:
            print(f"Failed to delete {product['id']}: {response.status_code} {response.text}")

    return deleted


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Delete all storefront products")
    parser.add_argument("--url", default="http://localhost:8000", help="API URL (default: http://localhost:8000)")
    parser.add_argument("--token", default=os.getenv("ADMIN_TOKEN"), help="Admin bearer token (default: $ADMIN_TOKEN)")
    parser.add_argument("--yes", action="store_true", help="Skip the confirmation prompt")
    args = parser.parse_args()

    if not args.yes and input(f"Delete ALL products at {args.url}? [y/N] ").strip().lower() != "y":
        print("Aborted")
        sys.exit(1)

    try:
        count = clear_catalog(args.url, args.token)
    except requests.RequestException as e:
        print(f"Error: {e}")
        sys.exit(1)

    print(f"Deleted {count} products")
