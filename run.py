import uvicorn
import os

if __name__ == "__main__":
    # Start server
    port = int(os.environ.get("PORT", 8000))
    uvicorn.run(
        "pos_api.main:app",
        host="0.0.0.0",
        port=port,
        reload=os.environ.get("ENVIRONMENT", "development") == "development",
        log_level="info"
    )
