"""Lookup dictionaries for the heuristic detector.

All entries are lower-case.  Everything here is an immutable module-level
constant so detectors running in parallel threads can share it freely.
"""

from __future__ import annotations

COMMON_FIRST_NAMES: frozenset[str] = frozenset({
    # Indian
    "aarav", "aditi", "aditya", "akash", "amit", "amita", "ananya", "anil", "anita", "anjali",
    "ankita", "arjun", "arun", "aruna", "ashok", "bhavna", "chandra", "deepak", "deepika", "dev",
    "devika", "dhruv", "dinesh", "divya", "ganesh", "gaurav", "geeta", "hari", "harish", "indira",
    "isha", "jagdish", "kamala", "karan", "kavita", "kishore", "krishna", "kumar", "lakshmi", "mahesh",
    "manish", "meera", "mohan", "mohit", "nandini", "naresh", "neha", "nikhil", "nisha", "pankaj",
    "pooja", "prakash", "priya", "rahul", "rajesh", "rajiv", "raman", "ramesh", "rani", "ravi",
    "rekha", "rohit", "sachin", "sandeep", "sanjay", "sapna", "saroj", "seema", "shanti", "sharma",
    "shivani", "shobha", "shreya", "sita", "sneha", "sunil", "sunita", "suresh", "swati", "tanvi",
    "usha", "varun", "vijay", "vikram", "vinod", "vishal", "vivek", "yash", "yogesh",
    # English
    "john", "james", "robert", "michael", "william", "david", "richard", "joseph", "thomas", "charles",
    "mary", "patricia", "jennifer", "linda", "elizabeth", "barbara", "susan", "jessica", "sarah", "karen",
    # Arabic
    "mohammed", "ahmed", "ali", "hassan", "hussein", "omar", "fatima", "aisha", "zainab", "khadija",
})

COMMON_LAST_NAMES: frozenset[str] = frozenset({
    "sharma", "verma", "gupta", "singh", "kumar", "patel", "joshi", "mishra", "agarwal", "mehta",
    "reddy", "rao", "nair", "menon", "pillai", "iyer", "iyengar", "mukherjee", "chatterjee", "banerjee",
    "das", "bose", "sen", "ghosh", "roy", "dutta", "sinha", "jain", "shah", "desai",
    "kulkarni", "patil", "deshpande", "kaur", "gill", "bajwa", "chopra", "kapoor", "malhotra", "khanna",
    "saxena", "pandey", "tiwari", "dubey", "trivedi", "dwivedi", "shukla", "chauhan", "yadav", "thakur",
    "smith", "johnson", "williams", "brown", "jones", "davis", "miller", "wilson", "moore", "taylor",
    "doe",
})

# Sorted tuple rather than a set: phrase matching emits in a stable order.
INDIAN_STATES: tuple[str, ...] = tuple(sorted({
    "andhra pradesh", "arunachal pradesh", "assam", "bihar", "chhattisgarh", "goa", "gujarat",
    "haryana", "himachal pradesh", "jharkhand", "karnataka", "kerala", "madhya pradesh",
    "maharashtra", "manipur", "meghalaya", "mizoram", "nagaland", "odisha", "punjab", "rajasthan",
    "sikkim", "tamil nadu", "telangana", "tripura", "uttar pradesh", "uttarakhand", "west bengal",
    "delhi", "chandigarh", "puducherry", "jammu and kashmir", "ladakh",
}))

MEDICAL_TERMS: frozenset[str] = frozenset({
    "diabetes", "hypertension", "asthma", "cancer", "hiv", "aids", "tuberculosis", "tb",
    "hepatitis", "malaria", "dengue", "cholesterol", "thyroid", "arthritis", "epilepsy",
    "pneumonia", "bronchitis", "anemia", "leukemia", "lymphoma", "insulin", "metformin",
    "chemotherapy", "radiation", "surgery", "biopsy", "diagnosis", "prognosis", "prescription",
    "medication", "dosage", "allergic", "allergy", "positive", "negative", "report", "pathology",
    "radiology", "mri", "x-ray", "ultrasound", "ecg", "ekg",
    "patient", "hospital", "clinic", "doctor", "physician", "surgeon",
})

MEDICAL_PHRASES: frozenset[str] = frozenset({
    "blood pressure", "heart disease", "kidney disease", "liver disease", "lung disease",
    "ct scan",
})

ADDRESS_KEYWORDS: frozenset[str] = frozenset({
    "road", "rd", "street", "st", "avenue", "ave", "lane", "ln", "nagar", "colony", "sector",
    "block", "plot", "flat", "floor", "building", "bldg", "apartment", "apt", "house", "no",
    "near", "opposite", "opp", "behind", "beside", "main", "cross", "layout",
    "extension", "extn", "phase", "village", "town", "city", "district", "taluk", "tehsil",
    "post", "pin", "pincode", "zip",
})

DOB_CONTEXT_TERMS: tuple[str, ...] = (
    "dob", "date of birth", "birth date", "born", "birthday", "d.o.b",
)
