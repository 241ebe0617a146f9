"""Global constants for the familybank application."""

# Collection names
USER_PROFILES = "userProfiles"
FAMILIES = "families"
ACTIVITIES = "activities"
SAVINGS_ENTRIES = "savingsEntries"

# Fields for 'userProfiles'
PROFILE_NAME = "name"
PROFILE_EMAIL = "email"
PROFILE_APPLE_USER_IDENTIFIER = "appleUserIdentifier"
PROFILE_FAMILY_REFERENCE = "familyReference"
PROFILE_IMAGE_URL = "profileImageUrl"

# Fields for 'families'
FAMILY_INVITE_CODE = "inviteCode"
FAMILY_CREATOR_REFERENCE = "creatorReference"

# Fields for 'activities'
ACTIVITY_TITLE = "title"
ACTIVITY_MONEY_GOAL = "moneyGoal"
ACTIVITY_END_DATE = "endDate"
ACTIVITY_PICTURE_URL = "pictureUrl"
ACTIVITY_FAMILY_REFERENCE = "familyReference"
ACTIVITY_ASSIGNED_TO = "assignedTo"

# Fields for 'savingsEntries'
SAVINGS_AMOUNT = "amountSaved"
SAVINGS_DATE_LOGGED = "dateLogged"
SAVINGS_NOTES = "notes"
SAVINGS_ACTIVITY_REFERENCE = "activityReference"
SAVINGS_USER_REFERENCE = "userReference"

CREATED_AT = "createdAt"

# Sign-in defaults
UNKNOWN_USER_NAME = "Unknown User"

# Invite codes look like ABC-123
INVITE_CODE_LETTERS = "ABCDEFGHIJKLMNOPQRSTUVWXYZ"
INVITE_CODE_DIGITS = "0123456789"
INVITE_CODE_PATTERN = r"^[A-Z]{3}-[0-9]{3}$"

# Session cookie key holding the stable identity
SESSION_IDENTITY_KEY = "stable_user_id"
