"""
Smoke check against a running backend.

    python smoke_check.py http://localhost:8000
"""
import asyncio
import sys

import httpx

BASE_URL = sys.argv[1] if len(sys.argv) > 1 else "http://localhost:8000"
ORIGIN = "http://localhost:5173"


async def smoke_check():
    async with httpx.AsyncClient(base_url=BASE_URL) as client:
        # Test preflight OPTIONS request
        print("Testing CORS preflight...")
        try:
            response = await client.options(
                "/api/readings/latest",
                headers={
                    "Origin": ORIGIN,
                    "Access-Control-Request-Method": "GET",
                    "Access-Control-Request-Headers": "content-type"
                }
            )
            print(f"OPTIONS Status: {response.status_code}")
            print(f"Allow-Origin: {response.headers.get('access-control-allow-origin')}")
        except httpx.HTTPError as e:
            print(f"OPTIONS Error: {e}")

        # Post a simulated reading, then read it back
        print("\nTesting ingest + latest...")
        try:
            response = await client.post("/api/test-data")
            response.raise_for_status()
            posted = response.json()["data"]
            print(f"POST /api/test-data: {posted['id']} @ {posted['timestamp']}")

            response = await client.get("/api/readings/latest", headers={"Origin": ORIGIN})
            response.raise_for_status()
            latest = response.json()
            match = "OK" if latest.get("id") == posted["id"] else "MISMATCH"
            print(f"GET /api/readings/latest: {latest.get('id')} [{match}]")
        except httpx.HTTPError as e:
            print(f"Ingest Error: {e}")

        print("\nTesting health...")
        try:
            response = await client.get("/health")
            print(f"Body: {response.text}")
        except httpx.HTTPError as e:
            print(f"GET Error: {e}")


if __name__ == "__main__":
    asyncio.run(smoke_check())
