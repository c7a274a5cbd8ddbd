"""HTTP layer: blueprints, bearer-token decorator and error handlers."""
