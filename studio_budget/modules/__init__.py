# Studio Budget modules
