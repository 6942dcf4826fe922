"""Print the Supabase schema for the portal's key-value slots."""
import os

from dotenv import load_dotenv

from db import DEFAULT_KV_TABLE

load_dotenv()

SUPABASE_URL = os.getenv("SUPABASE_URL")
KV_TABLE = os.getenv("EVALIFY_KV_TABLE") or DEFAULT_KV_TABLE

# One row per slot: teacher_tests, evalify_results, evalify_student_logged_in
SCHEMA_SQL = f"""
CREATE TABLE IF NOT EXISTS {KV_TABLE} (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at TIMESTAMPTZ DEFAULT NOW()
);
"""

if __name__ == "__main__":
    print("Supabase schema for Evalify")
    print(f"URL: {SUPABASE_URL}")
    print("\nNote: Due to Supabase client limitations, run this SQL in Supabase SQL Editor:")
    print(SCHEMA_SQL)
    print("Then set EVALIFY_STORE=supabase, SUPABASE_URL and SUPABASE_KEY in .env")
