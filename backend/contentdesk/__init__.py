"""ContentDesk: blog, testimonials, contact form and newsletter backend."""
