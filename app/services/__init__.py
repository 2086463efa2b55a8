# Services package init
"""
TravelPlaces Backend — Services Layer
=======================================

What:  Logic between routes (HTTP) and storage (object store, SQLite files).

Service Inventory:
    - ObjectStoreGateway:     get-object by (bucket, key) against S3
    - DatasetMaterializer:    per-request local copy of `{country}.db`
    - ImageResolver:          image flags → base64 payloads
    - ordering:               sort tokens → ORDER BY clauses, rating parsing
    - AttractionQueryService: region/county/attraction queries
    - UserService:            register / login against the credential store
"""
