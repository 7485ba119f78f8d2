"""
Vercel entry point for the Helpdesk API
"""
import os

# Set environment variables for serverless
os.environ.setdefault("ENVIRONMENT", "production")
os.environ.setdefault("SLA_RECONCILE_INTERVAL_SECONDS", "0")  # No background jobs in serverless

from mangum import Mangum

from helpdesk.main import app

# Lambda handler for ASGI app; lifespan wires the database and SLA policy
handler = Mangum(app, lifespan="auto")
