"""Data providers: Overpass, Wikidata, Wikipedia and website images."""
