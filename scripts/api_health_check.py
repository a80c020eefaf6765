#!/usr/bin/env python3
"""
Quick API health check script to verify the API is up and every source answers
"""
import requests
import sys


def check_api_health(base_url="http://localhost:8000", postcode="SW1A 1AA"):
    """Hit the service endpoints and report which profile sections came back."""

    print("=" * 80)
    print("API HEALTH CHECK")
    print("=" * 80)

    print("\n1. Testing root endpoint...")
    try:
        response = requests.get(f"{base_url}/", timeout=5)
        if response.status_code == 200:
            data = response.json()
            print(f"   ✅ Root endpoint working")
            print(f"   Service: {data.get('service')}")
            print(f"   Version: {data.get('version')}")
        else:
            print(f"   ❌ Root endpoint returned status {response.status_code}")
            return False
    except requests.exceptions.ConnectionError:
        print(f"   ❌ Cannot connect to {base_url}")
        print(f"   Make sure the API server is running: uvicorn main:app --reload")
        return False
    except requests.exceptions.RequestException as e:
        print(f"   ❌ Error: {e}")
        return False

    print("\n2. Testing health endpoint...")
    try:
        response = requests.get(f"{base_url}/health", timeout=5)
        if response.status_code == 200:
            data = response.json()
            print(f"   ✅ Health endpoint working")
            for name, state in data.get('sources', {}).items():
                print(f"   {name}: {state}")
        else:
            print(f"   ⚠️  Health endpoint returned status {response.status_code}")
    except requests.exceptions.RequestException as e:
        print(f"   ⚠️  Health check error: {e}")

    print(f"\n3. Testing profile endpoint with {postcode}...")
    try:
        response = requests.get(f"{base_url}/area/{postcode}", timeout=60)
    except requests.exceptions.RequestException as e:
        print(f"   ❌ Profile request failed: {e}")
        return False

    if response.status_code == 404:
        print(f"   ❌ Postcode not found: {postcode}")
        return False
    if response.status_code != 200:
        print(f"   ❌ Profile endpoint returned status {response.status_code}")
        return False

    data = response.json()
    location = data.get('location', {})
    print(f"   ✅ Resolved {location.get('postcode')} ({location.get('lat')}, {location.get('lng')})")
    print(f"   Response time: {data.get('metadata', {}).get('responseTimeSeconds')}s")

    missing = []
    for name, status in data.get('sources', {}).items():
        if status.get('available'):
            print(f"   ✅ {name}")
        else:
            print(f"   ⚠️  {name}: {status.get('error')}")
            missing.append(name)

    print("\n" + "=" * 80)
    if missing:
        print(f"{len(missing)} section(s) unavailable: {', '.join(missing)}")
    else:
        print("All sections available")
    print("=" * 80)
    return True


if __name__ == "__main__":
    base_url = sys.argv[1] if len(sys.argv) > 1 else "http://localhost:8000"
    postcode = sys.argv[2] if len(sys.argv) > 2 else "SW1A 1AA"
    ok = check_api_health(base_url, postcode)
    sys.exit(0 if ok else 1)
