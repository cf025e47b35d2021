# Services package init
"""
IoT Tech Backend — Services Layer
===================================

What:  Business logic between the routes (HTTP) and the storage backends.

Service Inventory:
    - CaseStudyRepository: validation, attachment lifecycle, CRUD over the
      active store
    - PersistenceAdapter: picks the database or JSON file store per call
    - DatabaseCaseStudyStore / FileCaseStudyStore: the two backends
    - FileService: image upload validation, storage, and cleanup
    - CatalogService: static devices, slides, and service offerings
"""
