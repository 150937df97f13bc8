"""chartcross — daily chart scraping and cross-country crossover analysis."""
