"""Next Page: track books you've read and get recommendations."""
