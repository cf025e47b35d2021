# Routes package init
"""
IoT Tech Backend — API Routes Package
=======================================

What:  HTTP route handlers that accept requests and return responses.
How:   Each route module handles one resource.

Route Inventory:
    - case_studies.py: GET/POST        /api/casestudies
                       GET/PUT/DELETE  /api/casestudies/{id}
    - catalog.py:      GET /api/devices, /api/devices/{id},
                       /api/devices/type/{type}, /api/status/{status},
                       /api/slides, /api/services
    - health.py:       GET /health

Routes stay thin: read the request, call a service, return its result.
Errors are raised as application exceptions and formatted in main.py.
"""
