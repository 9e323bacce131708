from .models import FreelancerProfile

COMPLETENESS_WEIGHTS = {
    "name": 10,
    "profile_image": 5,
    "title": 10,
    "bio": 15,
    "skills": 15,
    "hourly_rate": 5,
    "education": 10,
    "experience": 10,
    "portfolio": 15,
    "languages": 5,
}


def completeness_status(score):
    if score >= 85:
        return "Excellent"
    if score >= 70:
        return "Good"
    if score >= 40:
        return "Average"
    return "Incomplete"


def calculate_profile_completeness(profile: FreelancerProfile) -> dict:
    user = profile.user
    checks = {
        "name": bool(user.name),
        "profile_image": bool(user.profile_image),
        "title": bool(profile.title),
        "bio": bool(profile.bio),
        "skills": profile.skills.exists(),
        "hourly_rate": bool(profile.hourly_rate),
        "education": profile.education.exists(),
        "experience": profile.experience.exists(),
        "portfolio": profile.portfolio.exists(),
        "languages": profile.languages.exists(),
    }

    score = sum(COMPLETENESS_WEIGHTS[key] for key, done in checks.items() if done)
    return {
        "completeness": score,
        "status": completeness_status(score),
        "missing": [key for key, done in checks.items() if not done],
    }
