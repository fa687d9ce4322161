"""
Client IP resolution FastAPI app.
"""

import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from dotenv import load_dotenv

# Load environment variables FIRST before importing config and routers
load_dotenv(override=True)

from app import config
from app.middleware.client_ip import ClientIPMiddleware
from app.routers.client_ip import public_router as client_ip_router

# Configure logging
logging.basicConfig(
    level=config.get_log_level(),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

# Create FastAPI app
app = FastAPI(
    title="Client IP API",
    version="0.1.0",
    description="Resolves the originating client IP behind proxies, CDNs and load balancers"
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET"],
    allow_headers=["*"],
)

app.add_middleware(
    ClientIPMiddleware,
    header_priority=config.CLIENT_IP_HEADER_PRIORITY,
    strip_remote_port=config.CLIENT_IP_STRIP_REMOTE_PORT,
)

app.include_router(client_ip_router, prefix="/api/v1/client-ip", tags=["client-ip"])

@app.get("/")
def root():
    return {"message": "Client IP API", "version": "0.1.0", "status": "running"}

@app.get("/health")
def health_check():
    return {"status": "healthy", "version": "0.1.0"}

@app.on_event("startup")
async def startup_event():
    """Log the active resolution settings."""
    headers = ", ".join(name for name, _ in config.CLIENT_IP_HEADER_PRIORITY)
    logging.info(f"Client IP header priority: {headers}")
    logging.info(f"Strip remote address port: {config.CLIENT_IP_STRIP_REMOTE_PORT}")

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=config.HOST, port=config.PORT)
