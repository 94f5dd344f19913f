"""Higher-level operations built on the GraphQL client."""
