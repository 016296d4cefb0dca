"""
HTTP layer of the conversation engine.

- dialogflow_es: the Dialogflow ES fulfillment transport adapter
- webhook: POST /webhook, one conversation turn per request
- health: GET /health, liveness plus registry diagnostics
"""
