"""Video source handlers: a shared base, a CMS collection API handler and two site scrapers."""