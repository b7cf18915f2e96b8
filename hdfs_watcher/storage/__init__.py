"""Directory listers and URL builders for local storage and WebHDFS."""
