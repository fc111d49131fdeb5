"""HTTP benchmark comparing the naive and batched feed strategies."""
import asyncio
import argparse
import time
import statistics
import httpx

BASE_URL = "http://localhost:8000"

STRATEGIES = ("naive", "batched")


def endpoints(limit: int, query: str) -> list[tuple[str, str]]:
    paths = []
    for strategy in STRATEGIES:
        paths.append((f"feed limit={limit} [{strategy}]", f"/api/v1/posts?limit={limit}&strategy={strategy}"))
    for strategy in STRATEGIES:
        paths.append((f"search q={query!r} [{strategy}]", f"/api/v1/posts/search?q={query}&strategy={strategy}"))
    paths.append(("search indexed [batched]", f"/api/v1/posts/search?q={query}&strategy=batched&mode=indexed"))
    return paths


async def benchmark_endpoint(client: httpx.AsyncClient, name: str, path: str, iterations: int):
    times = []
    round_trips = []
    posts = 0
    errors = 0

    # Warmup
    try:
        await client.get(f"{BASE_URL}{path}")
    except httpx.HTTPError:
        pass

    for _ in range(iterations):
        try:
            start = time.perf_counter()
            resp = await client.get(f"{BASE_URL}{path}")
            elapsed = (time.perf_counter() - start) * 1000
        except httpx.HTTPError:
            errors += 1
            continue

        if resp.status_code != 200:
            errors += 1
            continue
        meta = resp.json()["meta"]
        times.append(elapsed)
        round_trips.append(meta["queryCount"])
        posts = meta["count"]

    if not times:
        return {"name": name, "error": f"All {iterations} requests failed"}

    ordered = sorted(times)
    return {
        "name": name,
        "avg_ms": round(statistics.mean(times), 2),
        "p50_ms": round(ordered[len(ordered) // 2], 2),
        "p95_ms": round(ordered[int(len(ordered) * 0.95)], 2),
        "posts": posts,
        "queries": round(statistics.mean(round_trips), 1),
        "errors": errors,
    }


async def run_benchmark(iterations: int, limit: int, query: str):
    print("=" * 96)
    print(f"Feed strategy benchmark — {iterations} iterations per endpoint")
    print(f"Target: {BASE_URL}")
    print("=" * 96)

    async with httpx.AsyncClient(timeout=None) as client:
        try:
            resp = await client.get(f"{BASE_URL}/health")
        except httpx.HTTPError as e:
            print(f"ERROR: Cannot connect to {BASE_URL} — {e}")
            return
        if resp.status_code != 200:
            print(f"ERROR: Health check failed ({resp.status_code})")
            return
        print(f"Health: {resp.json()}")

        print()
        print(f"{'Endpoint':<42} {'Avg':>10} {'P50':>10} {'P95':>10} {'Posts':>7} {'Queries':>9} {'Err':>4}")
        print("-" * 96)

        for name, path in endpoints(limit, query):
            result = await benchmark_endpoint(client, name, path, iterations)
            if "error" in result:
                print(f"{result['name']:<42} {'ERROR':>10}")
                continue
            print(
                f"{result['name']:<42} "
                f"{result['avg_ms']:>8.1f}ms "
                f"{result['p50_ms']:>8.1f}ms "
                f"{result['p95_ms']:>8.1f}ms "
                f"{result['posts']:>7} "
                f"{result['queries']:>9} "
                f"{result['errors']:>4}"
            )

        print("-" * 96)
        print("\nBenchmark complete.")


def main():
    global BASE_URL
    parser = argparse.ArgumentParser(description="Benchmark feed strategies")
    parser.add_argument("-n", "--iterations", type=int, default=5, help="Iterations per endpoint")
    parser.add_argument("--limit", type=int, default=100, help="Feed limit per request")
    parser.add_argument("-q", "--query", default="hello", help="Comment search query")
    parser.add_argument("--base-url", default=BASE_URL, help="API base URL")
    args = parser.parse_args()

    BASE_URL = args.base_url
    asyncio.run(run_benchmark(args.iterations, args.limit, args.query))


if __name__ == "__main__":
    main()
