from pymongo import MongoClient

_db = None

def init_mongo(app, client=None):
    """Connect to MongoDB. An already-built client (e.g. mongomock in tests) can be passed in."""
    global _db
    if client is None:
        client = MongoClient(app.config["MONGO_URI"])

    db_name = app.config.get("MONGO_DB_NAME")
    if db_name:
        _db = client[db_name]
    else:
        # DB name from the URI path, e.g. mongodb://host/expense_form
        _db = client.get_default_database(default="expense_form")

    print(f"[MongoDB] Connected to database: {_db.name}")

# Resolves collections (groups, categories, expenses, activities, preferences) on the current db
class _DBProxy:
    def __getattr__(self, name):
        if _db is None:
            raise RuntimeError("Database not initialized. Call init_mongo first.")
        return getattr(_db, name)

db = _DBProxy()
