"""Field type catalog shared by the registry, the signal sources and callers."""

from enum import Enum


class FieldType(str, Enum):
    """Built-in field type identifiers.

    Values are the wire identifiers shared with the pattern catalog and with
    the downstream filler's value lookup. The catalog file may declare more.
    """
    # Personal
    FIRST_NAME = "firstName"
    MIDDLE_NAME = "middleName"
    LAST_NAME = "lastName"
    FULL_NAME = "fullName"
    EMAIL = "email"
    PHONE = "phone"
    USERNAME = "username"
    DATE_OF_BIRTH = "dateOfBirth"
    BIRTH_DAY = "birthDay"
    BIRTH_MONTH = "birthMonth"
    BIRTH_YEAR = "birthYear"

    # Address
    STREET = "street"
    ADDRESS_LINE_2 = "addressLine2"
    CITY = "city"
    STATE = "state"
    ZIP_CODE = "zipCode"
    COUNTRY = "country"

    # Links
    LINKEDIN = "linkedIn"
    GITHUB = "github"
    PORTFOLIO = "portfolio"
    TWITTER = "twitter"

    # Work experience
    CURRENT_COMPANY = "currentCompany"
    CURRENT_TITLE = "currentTitle"
    PREVIOUS_COMPANY = "previousCompany"
    PREVIOUS_TITLE = "previousTitle"
    WORK_LOCATION = "workLocation"
    WORK_START_DATE = "workStartDate"
    WORK_END_DATE = "workEndDate"
    WORK_DESCRIPTION = "workDescription"
    YEARS_EXPERIENCE = "yearsExperience"

    # Education
    SCHOOL = "school"
    DEGREE = "degree"
    FIELD_OF_STUDY = "fieldOfStudy"
    GRADUATION_YEAR = "graduationYear"
    GPA = "gpa"

    # Compensation
    CURRENT_COMPENSATION = "currentCompensation"
    EXPECTED_COMPENSATION = "expectedCompensation"
    NOTICE_PERIOD = "noticePeriod"

    # Diversity and eligibility
    GENDER = "gender"
    NATIONALITY = "nationality"
    VETERAN_STATUS = "veteranStatus"
    DISABILITY = "disability"
    AUTHORIZED_TO_WORK = "authorizedToWork"
    REQUIRE_SPONSORSHIP = "requireSponsorship"

    # Application
    COVER_LETTER = "coverLetter"
    RESUME = "resume"
    AGREE_TERMS = "agreeTerms"

    # Skills
    SKILLS = "skills"
    TECHNICAL_SKILLS = "technicalSkills"
    SOFT_SKILLS = "softSkills"
    TOOLS = "tools"
    FRAMEWORKS = "frameworks"

    def __str__(self) -> str:
        return self.value


class SectionType(str, Enum):
    """Coarse structural regions of a form."""
    PERSONAL = "personal"
    EXPERIENCE = "experience"
    EDUCATION = "education"
    SKILLS = "skills"
    COMPENSATION = "compensation"
    DIVERSITY = "diversity"
    APPLICATION = "application"

    def __str__(self) -> str:
        return self.value
