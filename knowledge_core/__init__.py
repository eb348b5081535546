"""Knowledge extraction, classification and similarity core."""
