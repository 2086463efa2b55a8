# Routes package init
"""
TravelPlaces Backend — API Routes Package
===========================================

What:  HTTP route handlers that accept requests and return responses.

Route Inventory:
    - network.py:     GET  /api/ip                          (server address)
    - regions.py:     GET  /regions/{country}               (distinct regions)
                      GET  /regions/{country}/{county}      (optional, flag)
                      GET  /countis/{country}               (distinct counties)
    - attractions.py: GET  /attractions/{country}           (filtered, paginated list)
                      GET  /attraction/{country}/{id}       (single attraction)
    - auth.py:        POST /register, POST /login           (optional, flag)
    - health.py:      GET  /health                          (service health check)

Routes stay thin: read parameters, obtain the dataset handle or DB session
through dependencies, call a service, return its model.
"""
