from contentdesk.models.post import Post
from contentdesk.models.contact_submission import ContactSubmission
from contentdesk.models.testimonial import Testimonial
from contentdesk.models.newsletter_subscriber import NewsletterSubscriber
from contentdesk.models.newsletter_upload import NewsletterUpload
