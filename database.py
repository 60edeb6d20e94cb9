"""MongoDB connection used as the backing blob store."""

from pymongo import MongoClient

import config

# MongoClient connects lazily, so importing this module never blocks.
client = MongoClient(config.DATABASE_URL)
db = client[config.DATABASE_NAME]
