"""
Cart runtime configuration.

Read once from the environment at import time.
"""
import os

# memory | file | redis
CART_STORAGE_BACKEND = os.environ.get("CART_STORAGE_BACKEND", "file").strip().lower()

# Used by the file backend
CART_STORAGE_PATH = os.environ.get("CART_STORAGE_PATH", "./.gomarket/cart.json")

# Key under which the cart record is stored; changing it orphans existing carts
CART_STORAGE_KEY = os.environ.get("CART_STORAGE_KEY", "@GoMarketplace:products")

# Upstash uses REST_URL and REST_TOKEN
UPSTASH_REDIS_REST_URL = os.environ.get("UPSTASH_REDIS_REST_URL", "")
UPSTASH_REDIS_REST_TOKEN = os.environ.get("UPSTASH_REDIS_REST_TOKEN", "")

STORAGE_BACKENDS = ("memory", "file", "redis")
