"""Supporting services: result cache, retry and throttling."""
