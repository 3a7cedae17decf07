"""Services shared across routes: HTTP session, URL guard, image proxy."""
