"""Server entry point for the action dispatch API."""

import os

import uvicorn


def main():
    """Run the FastAPI server."""
    uvicorn.run(
        "clawd.api:app",
        host=os.environ.get("CLAWD_HOST", "0.0.0.0"),
        port=int(os.environ.get("CLAWD_PORT", "8080")),
        log_level="info",
    )


if __name__ == "__main__":
    main()
