# Shadow Generator API
