# Services package.
#
#   feed_service     — feed listing and comment search, hydrated through a
#                      naive or batched fetch strategy with per-request
#                      round-trip instrumentation
#   metrics_service  — table totals for the metrics endpoint, cached in Redis
#
# Services receive their store / session from the router layer (FastAPI
# dependencies) and never open connections of their own.
