import os
import tempfile

# Must run before calendar_app.core.config builds its settings singleton
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="calendar-uploads-")
os.environ["JWT_SECRET"] = "test-secret"
