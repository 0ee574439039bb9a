"""
Default message templates for automated patient messages.

These constants are used to seed the message_templates table. Each template is
referenced by id from the default automation rules, and admins can edit the
stored copies afterwards.
"""

# Onboarding message (sent when a patient completes onboarding)
DEFAULT_WELCOME_MESSAGE = """Welcome to Results Pro, {{patientName}}! 🎉

I'm here to support you throughout your {{peptideType}} journey. You can message me anytime with questions about:

• Dosing and injection techniques
• Side effects or concerns
• Progress tracking
• General support

Your success is our priority. Let's achieve amazing results together!"""

# Daily dosing reminder
DEFAULT_DAILY_DOSING_REMINDER = """Hi {{patientName}}! 💊

This is your daily reminder to take your {{peptideType}} dose. Remember to:

• Follow your personalized dosing schedule
• Rotate injection sites
• Log your dose in the app

You're doing great - keep up the excellent work! 💪"""

# Weekly check-in
DEFAULT_WEEKLY_CHECKIN = """Hi {{patientName}}! 📊

How are you feeling this week? I'd love to hear about:

• Any changes in your weight or measurements
• How you're feeling overall
• Any questions or concerns
• Your energy levels and mood

Remember, I'm here to support you every step of the way!"""

# Milestone congratulations
DEFAULT_MILESTONE_CONGRATULATIONS = """🎉 AMAZING NEWS, {{patientName}}! 🎉

You've reached an incredible milestone in your journey! Your dedication and consistency are truly paying off.

Keep up the fantastic work - you're proving that sustainable results are absolutely achievable. I'm so proud of your progress!

What's your next goal? I'm here to help you reach it! 💪✨"""

# Follow-up for patients without recent activity
DEFAULT_INACTIVE_FOLLOWUP = """Hi {{patientName}}, 👋

I noticed you haven't logged in recently, and I wanted to check in with you. Sometimes life gets busy - I totally understand!

Is there anything I can help you with to get back on track? Whether it's:

• Technical support with the app
• Questions about your program
• Adjusting your schedule
• Just need some motivation

I'm here for you. Your success matters to me! 💙"""

DEFAULT_MESSAGE_TEMPLATES = [
    {
        "id": "welcome-message",
        "name": "Welcome Message",
        "category": "onboarding",
        "content": DEFAULT_WELCOME_MESSAGE,
        "variables": ["patientName", "peptideType"],
    },
    {
        "id": "daily-dosing-reminder",
        "name": "Daily Dosing Reminder",
        "category": "dosing",
        "content": DEFAULT_DAILY_DOSING_REMINDER,
        "variables": ["patientName", "peptideType"],
    },
    {
        "id": "weekly-checkin",
        "name": "Weekly Check-in",
        "category": "engagement",
        "content": DEFAULT_WEEKLY_CHECKIN,
        "variables": ["patientName"],
    },
    {
        "id": "milestone-congratulations",
        "name": "Milestone Congratulations",
        "category": "motivation",
        "content": DEFAULT_MILESTONE_CONGRATULATIONS,
        "variables": ["patientName"],
    },
    {
        "id": "inactive-followup",
        "name": "Inactive Follow-up",
        "category": "engagement",
        "content": DEFAULT_INACTIVE_FOLLOWUP,
        "variables": ["patientName"],
    },
]
