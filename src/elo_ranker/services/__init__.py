"""Services: storage, voting, matchups, uploads and the request boundary."""
