"""Firebase initialisation shared by the maintenance scripts."""

import json
import os
import sys
from pathlib import Path

import firebase_admin
from firebase_admin import credentials

# Add the project root to the Python path to allow importing 'drawpicks'
project_root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(project_root))


def initialize_firebase():
    """Initializes the Firebase Admin SDK."""
    cred = None
    # Try loading from file (for local dev)
    cred_path = project_root / "firebase_credentials.json"
    if cred_path.exists():
        try:
            cred = credentials.Certificate(str(cred_path))
        except Exception as e:
            print(f"Error loading credentials from file: {e}")
            return False
    else:
        # Fallback to environment variable (for production/CI)
        cred_json = os.environ.get("FIREBASE_CREDENTIALS_JSON")
        if cred_json:
            try:
                cred_info = json.loads(cred_json)
                cred = credentials.Certificate(cred_info)
            except (json.JSONDecodeError, ValueError) as e:
                print(f"Error parsing FIREBASE_CREDENTIALS_JSON: {e}")
                return False

    if not cred:
        print("Could not find Firebase credentials in file or environment variable.")
        return False

    if not firebase_admin._apps:
        firebase_admin.initialize_app(cred)
    return True
