# Services: orchestration, persistence contracts, task tracking
