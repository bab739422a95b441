"""HTTP value types — inbound Request, mutable Response, headers, params, cookies."""
