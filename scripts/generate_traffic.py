#!/usr/bin/env python3
"""
Traffic generator for the storefront service
Simulates anonymous shoppers browsing, filling carts, and checking out
"""

import random
import threading
import time
from datetime import datetime

import requests

API_URL = "http://localhost:8000"

COUNTRIES = ["US", "UK", "DE", "FR", "JP", "BR", "IN"]

# Weight for actions
ACTION_WEIGHTS = {
    "browse": 0.4,
    "add_to_cart": 0.3,
    "update_cart": 0.1,
    "checkout": 0.1,
    "view_cart": 0.05,
    "view_orders": 0.05,
}


def log(message):
    timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    print(f"[{timestamp}] {message}")


class Shopper:
    def __init__(self, shopper_id, country):
        self.shopper_id = shopper_id
        self.country = country
        # The session cookie issued on first contact lives in this jar
        self.http = requests.Session()
        self.products = []

    def _log(self, message):
        log(f"Shopper {self.shopper_id} ({self.country}): {message}")

    def fetch_products(self):
        try:
            response = self.http.get(f"{API_URL}/api/products", timeout=5)
            if response.status_code == 200:
                self.products = [p for p in response.json() if p["in_stock"]]
                self._log(f"Fetched {len(self.products)} products")
                return True
        except requests.RequestException as e:
            self._log(f"Failed to fetch products - {e}")
        return False

    def browse_products(self):
        if not self.products:
            self.fetch_products()

        if self.products:
            product = random.choice(self.products)
            try:
                response = self.http.get(f"{API_URL}/api/products/{product['id']}", timeout=5)
                if response.status_code == 200:
                    self._log(f"Browsing {product['name']}")
                    return True
            except requests.RequestException as e:
                self._log(f"Failed to browse product - {e}")
        return False

    def add_to_cart(self):
        if not self.products:
            self.fetch_products()

        if self.products:
            product = random.choice(self.products)
            try:
                response = self.http.post(
                    f"{API_URL}/api/cart",
                    json={"product_id": product["id"], "quantity": random.randint(1, 3)},
                    timeout=5
                )
                if response.status_code == 200:
                    self._log(f"Added {product['name']} to cart")
                    return True
                self._log(f"Failed to add to cart - {response.status_code} {response.json().get('code')}")
            except requests.RequestException as e:
                self._log(f"Failed to add to cart - {e}")
        return False

    def view_cart(self):
        try:
            response = self.http.get(f"{API_URL}/api/cart", timeout=5)
            if response.status_code == 200:
                items = response.json()
                self._log(f"Viewing cart with {len(items)} items")
                return items
        except requests.RequestException as e:
            self._log(f"Failed to view cart - {e}")
        return []

    def update_cart(self):
        items = self.view_cart()
        if not items:
            return False

        item = random.choice(items)
        try:
            if random.random() < 0.3:
                response = self.http.delete(f"{API_URL}/api/cart/{item['id']}", timeout=5)
                action = "Removed"
            else:
                response = self.http.patch(
                    f"{API_URL}/api/cart/{item['id']}",
                    json={"quantity": random.randint(1, 5)},
                    timeout=5
                )
                action = "Updated"
            if response.status_code == 200:
                self._log(f"{action} cart item {item['id']}")
                return True
        except requests.RequestException as e:
            self._log(f"Failed to update cart - {e}")
        return False

    def checkout(self):
        try:
            response = self.http.post(
                f"{API_URL}/api/orders",
                json={
                    "shipping_name": f"Shopper {self.shopper_id}",
                    "shipping_email": f"{self.shopper_id}@example.com",
                    "shipping_address": f"{random.randint(1, 999)} Market Street",
                    "shipping_city": "Springfield",
                    "shipping_zip": f"{random.randint(10000, 99999)}",
                    "shipping_country": self.country,
                },
                timeout=10
            )
            if response.status_code == 200:
                order = response.json()
                self._log(f"Checkout successful - Order {order['id']} total {order['total']}")
                return True
            self._log(f"Checkout failed - {response.status_code} {response.json().get('code')}")
        except requests.RequestException as e:
            self._log(f"Checkout failed - {e}")
        return False

    def view_orders(self):
        try:
            response = self.http.get(f"{API_URL}/api/orders", timeout=5)
            if response.status_code == 200:
                self._log(f"Viewing {len(response.json())} orders")
                return True
        except requests.RequestException as e:
            self._log(f"Failed to view orders - {e}")
        return False

    def random_action(self):
        action = random.choices(
            list(ACTION_WEIGHTS.keys()),
            weights=list(ACTION_WEIGHTS.values())
        )[0]

        if action == "browse":
            return self.browse_products()
        elif action == "add_to_cart":
            return self.add_to_cart()
        elif action == "update_cart":
            return self.update_cart()
        elif action == "checkout":
            return self.checkout()
        elif action == "view_cart":
            return bool(self.view_cart())
        elif action == "view_orders":
            return self.view_orders()


def shopper_session(shopper_id, country, duration_seconds, shopper_type="browser"):
    """
    Simulate a shopper session

    shopper_type:
    - "browser": Just browses products (50%)
    - "cart_abandoner": Adds to cart but doesn't checkout (30%)
    - "buyer": Completes a purchase (20%)
    """
    shopper = Shopper(shopper_id, country)
    end_time = time.time() + duration_seconds

    shopper.fetch_products()
    for _ in range(random.randint(2, 5)):
        shopper.browse_products()
        time.sleep(random.uniform(0.5, 1.5))

    if shopper_type == "browser":
        while time.time() < end_time:
            shopper.browse_products()
            time.sleep(random.uniform(0.3, 0.8))

    elif shopper_type == "cart_abandoner":
        for _ in range(random.randint(1, 3)):
            shopper.add_to_cart()
            time.sleep(random.uniform(0.3, 0.8))

        while time.time() < end_time:
            if random.random() < 0.5:
                shopper.browse_products()
            else:
                shopper.view_cart()
            time.sleep(random.uniform(0.3, 0.8))

    elif shopper_type == "buyer":
        for _ in range(random.randint(1, 3)):
            shopper.add_to_cart()
            time.sleep(random.uniform(0.3, 0.8))
        shopper.checkout()

        while time.time() < end_time:
            shopper.random_action()
            time.sleep(random.uniform(0.5, 1.5))


def generate_traffic(num_concurrent_shoppers=5, session_duration=60):
    """Generate traffic with multiple concurrent shoppers"""
    log(f"Starting traffic generation with {num_concurrent_shoppers} concurrent shoppers")
    log(f"Session duration: {session_duration} seconds")

    threads = []
    country_index = 0

    try:
        while True:
            while len([t for t in threads if t.is_alive()]) < num_concurrent_shoppers:
                country = COUNTRIES[country_index % len(COUNTRIES)]
                country_index += 1

                shopper_id = f"shopper_{random.randint(1000, 9999)}"

                rand = random.random()
                if rand < 0.50:
                    shopper_type = "browser"
                elif rand < 0.80:
                    shopper_type = "cart_abandoner"
                else:
                    shopper_type = "buyer"

                thread = threading.Thread(
                    target=shopper_session,
                    args=(shopper_id, country, session_duration, shopper_type)
                )
                thread.start()
                threads.append(thread)

                time.sleep(random.uniform(1, 3))

            threads = [t for t in threads if t.is_alive()]
            time.sleep(5)

    except KeyboardInterrupt:
        log("Stopping traffic generation...")
        for thread in threads:
            thread.join(timeout=10)
        log("Traffic generation stopped")


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Generate traffic for the storefront service")
    parser.add_argument("--users", type=int, default=5, help="Number of concurrent shoppers (default: 5)")
    parser.add_argument("--duration", type=int, default=60, help="Session duration in seconds (default: 60)")
    parser.add_argument("--url", type=str, default=API_URL, help=f"API URL (default: {API_URL})")

    args = parser.parse_args()
    API_URL = args.url

    log("=" * 60)
    log("Storefront Traffic Generator")
    log("=" * 60)
    log(f"API URL: {API_URL}")
    log(f"Concurrent Shoppers: {args.users}")
    log(f"Session Duration: {args.duration}s")
    log("=" * 60)

    generate_traffic(args.users, args.duration)
