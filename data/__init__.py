# Sample data for the media plan validation cascade

from .sample_plans import sample_media_plan, sample_onboarding

__all__ = ['sample_media_plan', 'sample_onboarding']
