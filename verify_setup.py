try:
    from peer_support.main import app
    from peer_support.core.config import settings
    print(f"Loaded Settings: {settings.PROJECT_NAME}")
    print(f"Routes: {len(app.routes)}")
    print("SUCCESS")
except Exception as e:
    import traceback
    traceback.print_exc()
    print(f"ERROR: {e}")
    exit(1)
